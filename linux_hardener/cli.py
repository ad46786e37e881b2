"""
Command Line Interface for linux-hardener.

Thin wiring around the engine: loads settings and the policy, builds the
registry (built-ins plus installed plugins) and renders results with rich.
"""

import logging
import platform
import signal
import sys
from importlib.metadata import entry_points
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .backup.snapshots import SnapshotStore
from .core.config import load_config
from .core.context import RunContext
from .core.exceptions import HardenerError
from .core.models import Profile
from .core.orchestrator import HardeningEngine
from .modules.registry import ModuleRegistry
from .policy.loader import dump_policy, load_policy
from .policy.schema import default_policy, validate_policy
from .reporting.generator import build_report, render_side_by_side, save_json
from .utils.os_detection import detect_distro, is_admin
from .utils.remote import run_remote

PLUGIN_ENTRY_POINT_GROUP = "linux_hardener.plugins"

console = Console()
logger = logging.getLogger(__name__)


def check_privileges():
    """Exit unless running as root."""
    if not is_admin():
        console.print(
            "[red]Error: Administrative privileges required![/red]\n"
            "Please run as: sudo linux-hardener <command>"
        )
        sys.exit(1)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_plugins(registry: ModuleRegistry) -> None:
    """Register module factories advertised by installed packages."""
    for ep in entry_points(group=PLUGIN_ENTRY_POINT_GROUP):
        registry.register(ep.load())
        logger.debug("Loaded plugin %s", ep.name)


def _build_engine(ctx, policy_path: str) -> HardeningEngine:
    settings = ctx.obj['settings']
    policy = load_policy(policy_path)
    distro = detect_distro(settings.os_release_path)
    registry = ModuleRegistry(settings)
    _load_plugins(registry)
    return HardeningEngine(policy, distro, registry=registry)


def _run_context() -> RunContext:
    """Run context that is cancelled on SIGTERM."""
    run_ctx = RunContext()
    signal.signal(signal.SIGTERM, lambda signum, frame: run_ctx.cancel("terminated"))
    return run_ctx


@click.group()
@click.version_option(version="1.0.0")
@click.option('--config', '-c', help="Path to configuration file")
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """
    linux-hardener

    Converts a declarative security policy into SSH, sysctl and firewall
    configuration, with preview, idempotent apply and snapshot rollback.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['settings'] = load_config(config)


@cli.command('dry-run')
@click.argument('policy_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', help="Write a JSON report to this file")
@click.option('--diff/--no-diff', default=True, help="Show full old/new content")
@click.pass_context
def dry_run(ctx, policy_path: str, output: Optional[str], diff: bool):
    """Preview the changes a policy would make, without making them."""
    try:
        engine = _build_engine(ctx, policy_path)
        result = engine.dry_run_all(_run_context())
    except (HardenerError, OSError) as e:
        console.print(f"[red]Dry run failed: {e}[/red]")
        sys.exit(1)

    _display_dry_run(result, diff)

    if output:
        report = build_report(platform.node(), engine.policy, engine.distro, result)
        console.print(f"\n[green]Report saved to: {save_json(report, output)}[/green]")


@cli.command()
@click.argument('policy_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--force', is_flag=True, help="Skip safety confirmations")
@click.pass_context
def apply(ctx, policy_path: str, force: bool):
    """
    Apply a policy to this host.

    Changed files are snapshotted first so they can be rolled back. A host
    that already matches the policy needs no privileges.
    """
    try:
        engine = _build_engine(ctx, policy_path)
        run_ctx = _run_context()
        pending = engine.dry_run_all(run_ctx)
    except (HardenerError, OSError) as e:
        console.print(f"[red]Application failed: {e}[/red]")
        sys.exit(1)

    if not pending.has_changes:
        console.print("[green]No changes: host already matches the policy[/green]")
        return

    check_privileges()

    if not force:
        console.print(
            "[yellow]Warning: This will make changes to your system configuration![/yellow]\n"
        )
        if not click.confirm("Do you want to continue?"):
            console.print("Operation cancelled.")
            return

    try:
        report = engine.apply_all(run_ctx)
    except (HardenerError, OSError) as e:
        console.print(f"[red]Application failed: {e}[/red]")
        sys.exit(1)

    _display_engine_report(report)


@cli.command()
@click.argument('policy_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--module', '-m', 'module_name', help="Roll back only this module (e.g. SSH)")
@click.option('--force', is_flag=True, help="Skip confirmation prompts")
@click.pass_context
def rollback(ctx, policy_path: str, module_name: Optional[str], force: bool):
    """Restore configuration from the most recent snapshot."""
    check_privileges()

    if not force:
        console.print("[yellow]Warning: This will restore files from the latest snapshot[/yellow]")
        if not click.confirm("Do you want to continue?"):
            console.print("Rollback cancelled.")
            return

    try:
        engine = _build_engine(ctx, policy_path)
        run_ctx = _run_context()
        if module_name:
            engine.get_module(module_name).rollback(run_ctx)
            console.print(f"[green]{module_name} rolled back[/green]")
        else:
            _display_engine_report(engine.rollback_all(run_ctx))
    except (HardenerError, OSError, KeyError) as e:
        console.print(f"[red]Rollback failed: {e}[/red]")
        sys.exit(1)


@cli.group()
def policy():
    """Create and inspect policy documents."""
    pass


@policy.command('validate')
@click.argument('policy_path', type=click.Path(exists=True, dir_okay=False))
def validate_cmd(policy_path: str):
    """Check a policy document against its invariants."""
    try:
        validate_policy(load_policy(policy_path))
    except HardenerError as e:
        console.print(f"[red]Invalid policy: {e}[/red]")
        sys.exit(1)
    console.print(f"[green]{policy_path} is valid[/green]")


@policy.command('show')
@click.argument('policy_path', type=click.Path(exists=True, dir_okay=False))
def show_policy(policy_path: str):
    """Print a policy document in normalised form."""
    try:
        loaded = load_policy(policy_path)
    except HardenerError as e:
        console.print(f"[red]Failed to load policy: {e}[/red]")
        sys.exit(1)
    console.print(Syntax(dump_policy(loaded), "yaml"))


@policy.command('init')
@click.option('--profile', type=click.Choice([p.value for p in Profile]), default=Profile.PROD.value,
              help="Deployment profile to start from")
@click.option('--name', default="default", help="Policy name")
@click.option('--output', '-o', type=click.Path(dir_okay=False), help="Write to file instead of stdout")
def init_policy(profile: str, name: str, output: Optional[str]):
    """Generate a starting policy for a profile."""
    text = dump_policy(default_policy(Profile(profile), name))
    if output:
        with open(output, 'w') as f:
            f.write(text)
        console.print(f"[green]Policy written to: {output}[/green]")
    else:
        click.echo(text, nl=False)


@cli.command()
@click.pass_context
def snapshots(ctx):
    """List available snapshots, newest last."""
    store = SnapshotStore(ctx.obj['settings'].snapshot_root)
    entries = store.list_snapshots()
    if not entries:
        console.print("[yellow]No snapshots available[/yellow]")
        return

    table = Table(title="Snapshots")
    table.add_column("Snapshot", style="dim")
    table.add_column("Files")
    for entry in entries:
        table.add_row(entry.name, ", ".join(sorted(p.name for p in entry.iterdir())))
    console.print(table)


@cli.command()
@click.pass_context
def distro(ctx):
    """Show the detected distribution and firewall backend family."""
    info = detect_distro(ctx.obj['settings'].os_release_path)
    console.print(Panel(
        f"ID: {info.id}\n"
        f"Name: {info.name}\n"
        f"Version: {info.version}\n"
        f"Package manager: {info.package_manager.value}",
        title="Distribution"
    ))


@cli.command()
@click.argument('user_host')
@click.argument('command', nargs=-1, required=True)
@click.option('--timeout', type=float, default=60.0, show_default=True,
              help="Seconds before the remote command is killed")
def remote(user_host: str, command, timeout: float):
    """
    Run a command on another host through ssh.

    Example: linux-hardener remote admin@web1 -- linux-hardener dry-run /etc/policy.yaml
    """
    try:
        result = run_remote(_run_context(), user_host, list(command), timeout=timeout)
    except HardenerError as e:
        console.print(f"[red]Remote command failed: {e}[/red]")
        sys.exit(1)
    click.echo(result.stdout, nl=False)


def _display_dry_run(result, show_diff: bool):
    """Display the aggregated dry-run result."""
    if not result.diffs:
        console.print("[green]No changes: host already matches the policy[/green]")
    else:
        table = Table(title="Pending Changes")
        table.add_column("Target", style="bold")
        table.add_column("Lines now", justify="right")
        table.add_column("Lines after", justify="right")
        for d in result.diffs:
            table.add_row(d.path, str(len(d.old.splitlines())), str(len(d.new.splitlines())))
        console.print(table)

        if show_diff:
            for d in result.diffs:
                console.print(render_side_by_side(d), markup=False, highlight=False)

    for warning in result.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")


def _display_engine_report(report):
    """Display per-module outcome of apply or rollback."""
    table = Table(title=f"{report.operation.title()} Results")
    table.add_column("Module", style="bold")
    table.add_column("Status")
    for outcome in report.modules:
        if outcome.message:
            status = f"[dim]{outcome.message}[/dim]"
        elif outcome.changed:
            status = "[green]CHANGED[/green]"
        else:
            status = "[dim]unchanged[/dim]"
        table.add_row(outcome.module, status)
    console.print(table)


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
