"""
Unit tests for the module registry and the hardening engine.
"""

import pytest
from datetime import datetime
from unittest.mock import Mock, patch

from linux_hardener.core.context import RunContext
from linux_hardener.core.exceptions import (
    OperationCancelledError, PolicyValidationError, PrivilegeError
)
from linux_hardener.core.models import DryRunResult, FileDiff, Policy
from linux_hardener.core.orchestrator import HardeningEngine
from linux_hardener.modules.base import HardeningModule
from linux_hardener.modules.registry import ModuleRegistry
from linux_hardener.plugins import example

from conftest import EXPECTED_SSH_CONFIG, write_file


class RecordingModule(HardeningModule):
    """Test double that records calls into a shared journal."""

    def __init__(self, policy, distro, module_name, journal, changed=True,
                 fail=None, rollback_supported=True):
        super().__init__(policy, distro)
        self._name = module_name
        self.journal = journal
        self.changed = changed
        self.fail = fail
        self.supports_rollback = rollback_supported

    @property
    def name(self):
        return self._name

    def dry_run(self, ctx):
        self.journal.append(("dry_run", self._name))
        return DryRunResult(diffs=[FileDiff(path=self._name, old="", new="x")])

    def apply(self, ctx):
        self.journal.append(("apply", self._name))
        if self.fail:
            raise self.fail
        return self.changed

    def rollback(self, ctx):
        self.journal.append(("rollback", self._name))
        if self.fail:
            raise self.fail


class StubRegistry(ModuleRegistry):
    """Registry that builds only the given plugin-style modules."""
    builtin_modules = ()


def _engine_with(policy, distro, *specs):
    """Engine over RecordingModules built from (name, kwargs) specs."""
    journal = []
    registry = StubRegistry()
    for module_name, kwargs in specs:
        registry.register(
            lambda p, d, n=module_name, kw=kwargs: RecordingModule(p, d, n, journal, **kw)
        )
    return HardeningEngine(policy, distro, registry=registry), journal


class TestModuleRegistry:
    """Test registration order and sealing."""

    def test_builtin_order_then_plugins(self, settings, sample_policy, ubuntu_distro):
        registry = ModuleRegistry(settings)
        registry.register(example.factory)

        names = [m.name for m in registry.build(sample_policy, ubuntu_distro)]

        assert names == ["SSH", "Firewall", "Sysctl", "ExamplePlugin"]

    def test_plugins_keep_registration_order(self, settings, sample_policy, ubuntu_distro):
        registry = StubRegistry(settings)
        first, second = Mock(return_value="first"), Mock(return_value="second")
        registry.register(first)
        registry.register(second)

        assert registry.build(sample_policy, ubuntu_distro) == ["first", "second"]
        first.assert_called_once_with(sample_policy, ubuntu_distro)

    def test_sealed_after_build(self, settings, sample_policy, ubuntu_distro):
        registry = ModuleRegistry(settings)
        assert not registry.sealed

        registry.build(sample_policy, ubuntu_distro)

        assert registry.sealed
        with pytest.raises(RuntimeError):
            registry.register(example.factory)

    def test_registries_are_independent(self, settings, sample_policy, ubuntu_distro):
        """Registering on one registry does not leak into another."""
        with_plugin = ModuleRegistry(settings)
        with_plugin.register(example.factory)
        plain = ModuleRegistry(settings)

        assert len(plain.factories) == 0
        assert [m.name for m in plain.build(sample_policy, ubuntu_distro)] == ["SSH", "Firewall", "Sysctl"]

    def test_builtins_share_snapshot_store(self, settings, sample_policy, ubuntu_distro):
        modules = ModuleRegistry(settings).build(sample_policy, ubuntu_distro)
        assert len({id(m.snapshots) for m in modules}) == 1
        assert modules[0].snapshots.root == settings.snapshot_root


class TestHardeningEngine:
    """Test engine orchestration."""

    def test_invalid_policy_rejected(self, ubuntu_distro):
        """Validation happens at construction, before any module runs."""
        with pytest.raises(PolicyValidationError):
            HardeningEngine(Policy(name="", profile="prod"), ubuntu_distro)

    def test_modules_built_once(self, sample_policy, ubuntu_distro):
        registry = StubRegistry()
        factory = Mock(side_effect=lambda p, d: example.ExamplePlugin(p, d))
        registry.register(factory)
        engine = HardeningEngine(sample_policy, ubuntu_distro, registry=registry)

        engine.dry_run_all()
        engine.dry_run_all()

        assert engine.modules is engine.modules
        factory.assert_called_once()

    def test_dry_run_aggregates_in_order(self, settings, sample_policy, ubuntu_distro, ctx):
        """Built-in diffs come first, plugin warnings last."""
        registry = ModuleRegistry(settings)
        registry.register(example.factory)
        engine = HardeningEngine(sample_policy, ubuntu_distro, registry=registry)

        result = engine.dry_run_all(ctx)

        assert [d.path for d in result.diffs] == [
            str(settings.sshd_config_path), "firewall", str(settings.sysctl_path)
        ]
        assert result.diffs[0].new == EXPECTED_SSH_CONFIG
        assert result.warnings == ["example plugin: no changes"]

    def test_dry_run_disabled_firewall_warning(self, settings, sample_policy, ubuntu_distro, ctx):
        policy = sample_policy.model_copy(update={
            "firewall": sample_policy.firewall.model_copy(update={"enabled": False})
        })
        engine = HardeningEngine(policy, ubuntu_distro, settings=settings)

        result = engine.dry_run_all(ctx)

        assert "firewall" not in [d.path for d in result.diffs]
        assert result.warnings == ["Firewall disabled in policy"]

    def test_dry_run_error_aborts(self, sample_policy, ubuntu_distro):
        engine, journal = _engine_with(sample_policy, ubuntu_distro, ("A", {}), ("B", {}))
        engine.modules[0].dry_run = Mock(side_effect=OSError("unreadable"))

        with pytest.raises(OSError):
            engine.dry_run_all()
        assert journal == []

    def test_apply_all_reports_changes(self, sample_policy, ubuntu_distro):
        engine, journal = _engine_with(
            sample_policy, ubuntu_distro, ("A", {"changed": True}), ("B", {"changed": False})
        )

        report = engine.apply_all()

        assert report.operation == "apply"
        assert [(o.module, o.changed) for o in report.modules] == [("A", True), ("B", False)]
        assert report.changed_modules == ["A"]
        assert journal == [("apply", "A"), ("apply", "B")]

    def test_apply_all_fail_fast(self, sample_policy, ubuntu_distro):
        """A failing module stops the run; later modules are never applied."""
        engine, journal = _engine_with(
            sample_policy, ubuntu_distro,
            ("A", {}), ("B", {"fail": PrivilegeError()}), ("C", {}),
        )

        with pytest.raises(PrivilegeError):
            engine.apply_all()

        assert journal == [("apply", "A"), ("apply", "B")]

    def test_rollback_skips_unsupported(self, sample_policy, ubuntu_distro):
        engine, journal = _engine_with(
            sample_policy, ubuntu_distro,
            ("A", {}), ("B", {"rollback_supported": False}),
        )

        report = engine.rollback_all()

        assert journal == [("rollback", "A")]
        assert report.modules[0].changed is True
        assert report.modules[1].changed is False
        assert report.modules[1].message == "rollback not supported"

    def test_cancelled_context_stops_run(self, sample_policy, ubuntu_distro):
        engine, journal = _engine_with(sample_policy, ubuntu_distro, ("A", {}))
        run_ctx = RunContext()
        run_ctx.cancel("stop")

        with pytest.raises(OperationCancelledError, match="stop"):
            engine.apply_all(run_ctx)
        assert journal == []

    def test_get_module(self, settings, sample_policy, ubuntu_distro):
        engine = HardeningEngine(sample_policy, ubuntu_distro, settings=settings)

        assert engine.get_module("Sysctl").name == "Sysctl"
        with pytest.raises(KeyError):
            engine.get_module("Nope")

    def test_apply_then_rollback_end_to_end(self, settings, sample_policy, fedora_distro, ctx,
                                            as_root, no_external_commands):
        """Full cycle on a temporary tree with external commands stubbed."""
        write_file(settings.sshd_config_path, "Port 22\n")
        write_file(settings.sysctl_path, "vm.swappiness = 60\n")
        engine = HardeningEngine(sample_policy, fedora_distro, settings=settings)

        report = engine.apply_all(ctx)

        assert report.changed_modules == ["SSH", "Firewall", "Sysctl"]
        assert engine.dry_run_all(ctx).diffs[0].path == "firewall"

        engine.rollback_all(ctx)

        assert settings.sshd_config_path.read_text() == "Port 22\n"
        assert settings.sysctl_path.read_text() == "vm.swappiness = 60\n"

    def test_run_spanning_seconds_uses_one_snapshot(self, settings, sample_policy, ubuntu_distro,
                                                    ctx, as_root, no_external_commands):
        """Modules applied in different seconds still share the run's snapshot."""
        write_file(settings.sshd_config_path, "Port 22\n")
        write_file(settings.sysctl_path, "vm.swappiness = 60\n")
        engine = HardeningEngine(sample_policy, ubuntu_distro, settings=settings)

        with patch("linux_hardener.backup.snapshots.datetime") as mock_datetime:
            mock_datetime.now.side_effect = [
                datetime(2024, 5, 1, 12, 0, 0),
                datetime(2024, 5, 1, 12, 0, 1),
            ]
            engine.apply_all(ctx)

        snapshots = list(settings.snapshot_root.iterdir())
        assert [p.name for p in snapshots] == ["20240501-120000"]
        assert sorted(p.name for p in snapshots[0].iterdir()) == [
            "60-linux-hardener.conf", "sshd_config"
        ]

        report = engine.rollback_all(ctx)

        assert report.changed_modules == ["SSH", "Sysctl"]
        assert settings.sshd_config_path.read_text() == "Port 22\n"
        assert settings.sysctl_path.read_text() == "vm.swappiness = 60\n"

    def test_rollback_when_only_sysctl_drifted(self, settings, sample_policy, ubuntu_distro,
                                               ctx, as_root, no_external_commands):
        """A converged SSH module is reported, not fatal, and Sysctl is restored."""
        write_file(settings.sshd_config_path, EXPECTED_SSH_CONFIG)
        write_file(settings.sysctl_path, "vm.swappiness = 60\n")
        engine = HardeningEngine(sample_policy, ubuntu_distro, settings=settings)

        assert engine.apply_all(ctx).changed_modules == ["Firewall", "Sysctl"]

        report = engine.rollback_all(ctx)

        outcomes = {o.module: o for o in report.modules}
        assert outcomes["SSH"].changed is False
        assert outcomes["SSH"].message == "nothing to restore"
        assert outcomes["Firewall"].message == "rollback not supported"
        assert outcomes["Sysctl"].changed is True
        assert settings.sysctl_path.read_text() == "vm.swappiness = 60\n"
        assert settings.sshd_config_path.read_text() == EXPECTED_SSH_CONFIG

    def test_rollback_other_errors_still_abort(self, sample_policy, ubuntu_distro):
        engine, journal = _engine_with(
            sample_policy, ubuntu_distro,
            ("A", {"fail": PermissionError("denied")}), ("B", {}),
        )

        with pytest.raises(PermissionError):
            engine.rollback_all()
        assert journal == [("rollback", "A")]
