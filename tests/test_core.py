import json
import logging
from datetime import datetime
from types import SimpleNamespace

import pytest

import hostupdater.services.preflight as preflight_module
from hostupdater.core import HostUpdater
from hostupdater.errors import IndexRefreshError, LockTimeoutError
from hostupdater.models import (
    ChangeRecord,
    ExecutorOutcome,
    RestartState,
    RunConfig,
    Snapshot,
    ToolResult,
    ToolStatus,
)

STARTED_AT = datetime(2026, 10, 17, 3, 15, 0)


class FakeInteraction:
    def __init__(self, interactive=False, answer=""):
        self.interactive = interactive
        self.answer = answer
        self.questions = []

    def is_interactive(self):
        return self.interactive

    def ask(self, question):
        self.questions.append(question)
        return self.answer


def fail_if_called(label):
    def _fail(*_args, **_kwargs):
        raise AssertionError(f"{label} should not run")

    return _fail


def build_updater(tmp_path, interaction=None, **config_kwargs):
    config = RunConfig(backup_dir=str(tmp_path / "backups"), **config_kwargs)
    return HostUpdater(config, interaction=interaction or FakeInteraction(), started_at=STARTED_AT)


@pytest.fixture
def passing_guards():
    def _apply(updater, monkeypatch):
        monkeypatch.setattr(updater, "preflight", lambda: None)
        monkeypatch.setattr(updater, "wait_for_package_manager", lambda: 0)
        monkeypatch.setattr(updater.system_service, "reboot_required", lambda: False)
        monkeypatch.setattr(updater.backup_service, "run_all", lambda _config: {})

    return _apply


def stub_pipeline(updater, monkeypatch, pre, post, mode="full"):
    snapshots = iter([pre, post])
    captured = []

    def capture(label=""):
        captured.append(label)
        return next(snapshots)

    monkeypatch.setattr(updater.snapshot_service, "capture", capture)
    monkeypatch.setattr(updater.executor, "run", lambda _config: ExecutorOutcome(mode=mode))
    return captured


def test_insufficient_space_aborts_before_any_mutation(tmp_path, monkeypatch):
    updater = build_updater(tmp_path, min_free_mb=1024)

    monkeypatch.setattr(updater.system_service, "is_root", lambda: True)
    monkeypatch.setattr(updater.preflight_guard, "check_connectivity", lambda *_: None)
    monkeypatch.setattr(
        preflight_module.shutil,
        "disk_usage",
        lambda _path: SimpleNamespace(free=512 * 1024 * 1024),
    )
    monkeypatch.setattr(updater.lock_waiter, "wait_for_exclusive_access", fail_if_called("waiter"))
    monkeypatch.setattr(updater.snapshot_service, "capture", fail_if_called("snapshot"))
    monkeypatch.setattr(updater.backup_service, "run_all", fail_if_called("backup"))
    monkeypatch.setattr(updater.executor, "run", fail_if_called("executor"))
    monkeypatch.setattr(updater.apt_service, "configure_pending", fail_if_called("repair"))

    result = updater.execute()

    assert result.exit_code == 1
    assert result.guard_failure == "InsufficientSpaceError"
    assert result.executor is None
    assert result.change_set == ()
    assert result.restart_state is None


def test_privilege_failure_exits_with_one_and_writes_no_report(tmp_path, monkeypatch):
    updater = build_updater(tmp_path)
    monkeypatch.setattr(updater.system_service, "is_root", lambda: False)

    assert updater.run() == 1
    assert not (tmp_path / "backups").exists()


def test_lock_timeout_is_fatal_without_repair(tmp_path, monkeypatch):
    updater = build_updater(tmp_path)

    def timeout():
        raise LockTimeoutError("busy")

    monkeypatch.setattr(updater, "preflight", lambda: None)
    monkeypatch.setattr(updater, "wait_for_package_manager", timeout)
    monkeypatch.setattr(updater.apt_service, "configure_pending", fail_if_called("repair"))
    monkeypatch.setattr(updater.executor, "run", fail_if_called("executor"))

    result = updater.execute()

    assert result.exit_code == 1
    assert result.guard_failure == "LockTimeoutError"
    assert result.repair_attempted is False


def test_successful_run_reports_changes(tmp_path, monkeypatch, passing_guards):
    updater = build_updater(tmp_path)
    passing_guards(updater, monkeypatch)
    stub_pipeline(
        updater,
        monkeypatch,
        Snapshot.from_pairs([("A", "1.0"), ("B", "2.0")]),
        Snapshot.from_pairs([("A", "1.1"), ("B", "2.0"), ("C", "1.0")]),
    )

    result = updater.execute()

    assert result.exit_code == 0
    assert result.change_set == (ChangeRecord("A", "1.0", "1.1"), ChangeRecord("C", None, "1.0"))
    assert result.kernel_changed is False
    assert result.restart_state == RestartState.NO_KERNEL_CHANGE

    report = tmp_path / "backups" / "update-report-2026-10-17_031500.json"
    data = json.loads(report.read_text(encoding="utf-8"))
    assert data["status"] == "success"
    assert [step["name"] for step in data["steps"]] == [
        "preflight",
        "wait_for_package_manager",
        "snapshot_pre",
        "backup",
        "update",
        "snapshot_post",
        "diff",
        "restart_decision",
    ]


def test_kernel_change_on_non_interactive_run_warns(tmp_path, monkeypatch, passing_guards, caplog):
    interaction = FakeInteraction(interactive=False)
    updater = build_updater(tmp_path, interaction=interaction)
    passing_guards(updater, monkeypatch)
    stub_pipeline(
        updater,
        monkeypatch,
        Snapshot.from_pairs([("linux-image-generic", "5.15.0-86")]),
        Snapshot.from_pairs([("linux-image-generic", "5.15.0-87")]),
    )

    with caplog.at_level(logging.WARNING, logger="hostupdater"):
        result = updater.execute()

    assert result.exit_code == 0
    assert result.kernel_changed is True
    assert result.restart_state == RestartState.KERNEL_CHANGED_NONINTERACTIVE
    assert interaction.questions == []
    assert any("Restart the system manually" in message for message in caplog.messages)


def test_kernel_change_on_interactive_run_prompts_and_reboots(
    tmp_path, monkeypatch, passing_guards
):
    interaction = FakeInteraction(interactive=True, answer="y")
    updater = build_updater(tmp_path, interaction=interaction)
    passing_guards(updater, monkeypatch)
    stub_pipeline(
        updater,
        monkeypatch,
        Snapshot.from_pairs([("linux-headers-generic", "5.15.0-86")]),
        Snapshot.from_pairs([("linux-headers-generic", "5.15.0-87")]),
    )
    reboots = []
    monkeypatch.setattr(
        updater.system_service,
        "reboot",
        lambda: reboots.append(True) or ToolResult(ToolStatus.SUCCESS, 0),
    )

    result = updater.execute()

    assert result.restart_state == RestartState.REBOOTING
    assert len(interaction.questions) == 1
    assert reboots == [True]


def test_dry_run_skips_post_snapshot_diff_and_restart_prompt(tmp_path, monkeypatch, passing_guards):
    interaction = FakeInteraction(interactive=True, answer="y")
    updater = build_updater(tmp_path, interaction=interaction, dry_run=True)
    passing_guards(updater, monkeypatch)
    captured = stub_pipeline(
        updater,
        monkeypatch,
        Snapshot.from_pairs([("linux-image-generic", "5.15.0-86")]),
        Snapshot.from_pairs([("linux-image-generic", "5.15.0-87")]),
        mode="dry_run",
    )

    result = updater.execute()

    assert result.exit_code == 0
    assert captured == ["before"]
    assert result.change_set == ()
    assert result.kernel_changed is False
    assert result.restart_state == RestartState.NO_KERNEL_CHANGE
    assert interaction.questions == []


def test_failure_after_mutation_started_attempts_one_repair(tmp_path, monkeypatch, passing_guards):
    updater = build_updater(tmp_path)
    passing_guards(updater, monkeypatch)
    monkeypatch.setattr(updater.snapshot_service, "capture", lambda label="": Snapshot())

    def refresh_fails(_config):
        raise IndexRefreshError("refresh failed")

    monkeypatch.setattr(updater.executor, "run", refresh_fails)
    repairs = []
    monkeypatch.setattr(
        updater.apt_service,
        "configure_pending",
        lambda: repairs.append(True) or ToolResult(ToolStatus.SUCCESS, 0),
    )

    result = updater.execute()

    assert result.exit_code == 1
    assert result.repair_attempted is True
    assert repairs == [True]


def test_dry_run_failure_does_not_repair(tmp_path, monkeypatch, passing_guards):
    updater = build_updater(tmp_path, dry_run=True)
    passing_guards(updater, monkeypatch)
    monkeypatch.setattr(updater.snapshot_service, "capture", lambda label="": Snapshot())

    def refresh_fails(_config):
        raise IndexRefreshError("refresh failed")

    monkeypatch.setattr(updater.executor, "run", refresh_fails)
    monkeypatch.setattr(updater.apt_service, "configure_pending", fail_if_called("repair"))

    result = updater.execute()

    assert result.exit_code == 1
    assert result.repair_attempted is False


def test_reboot_required_marker_is_surfaced_separately(
    tmp_path, monkeypatch, passing_guards, caplog
):
    updater = build_updater(tmp_path)
    passing_guards(updater, monkeypatch)
    monkeypatch.setattr(updater.system_service, "reboot_required", lambda: True)
    stub_pipeline(updater, monkeypatch, Snapshot(), Snapshot())

    with caplog.at_level(logging.WARNING, logger="hostupdater"):
        result = updater.execute()

    assert result.reboot_required_marker is True
    assert result.restart_state == RestartState.NO_KERNEL_CHANGE
    assert any("restart is required" in message for message in caplog.messages)


def test_backup_artifacts_use_run_stamp(tmp_path):
    updater = build_updater(tmp_path)

    assert updater.backup_service.full_manifest_path.endswith(
        "installed-packages-2026-10-17_031500.list"
    )
