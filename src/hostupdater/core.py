import logging
import os
import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Optional

import requests
from rich.console import Console

from .constants import PROBE_TARGETS, STAMP_FORMAT
from .errors import PrivilegeError, UpdaterError
from .models import RunConfig, RunResult
from .services.backup import BackupService
from .services.command_runner import CommandRunner
from .services.diff import build_change_table, diff_snapshots, format_change_lines
from .services.executor import UpdateExecutor
from .services.flatpak import FlatpakService
from .services.journal import JournalService
from .services.lock_waiter import ExclusiveAccessWaiter
from .services.package_manager import AptService
from .services.preflight import PreflightGuard
from .services.report import ReportService
from .services.restart import RestartDecision, TerminalInteraction, is_kernel_change
from .services.snapshot import SnapshotService
from .services.system import SystemService

console = Console()
logger = logging.getLogger("hostupdater")


class HostUpdater:
    """Runs one maintenance cycle: guard, wait, back up, update, summarise, restart."""

    def __init__(self, config: RunConfig, interaction=None, started_at: Optional[datetime] = None):
        self.config = config
        self.started_at = started_at or datetime.now()
        self.stamp = self.started_at.strftime(STAMP_FORMAT)
        self.run_id = uuid.uuid4().hex[:10]
        self.probe_targets = PROBE_TARGETS
        self.mutation_started = False

        self.command_runner = CommandRunner(logger=logger)
        self.apt_service = AptService(
            command_runner=self.command_runner,
            logger=logger,
            lock_timeout=config.apt_lock_timeout,
        )
        self.flatpak_service = FlatpakService(command_runner=self.command_runner)
        self.journal_service = JournalService(command_runner=self.command_runner)
        self.system_service = SystemService(command_runner=self.command_runner, logger=logger)

        self.preflight_guard = PreflightGuard(
            system_service=self.system_service,
            logger=logger,
            requests_module=requests,
        )
        self.lock_waiter = ExclusiveAccessWaiter(command_runner=self.command_runner, logger=logger)
        self.snapshot_service = SnapshotService(apt_service=self.apt_service, logger=logger)
        self.backup_service = BackupService(
            apt_service=self.apt_service,
            command_runner=self.command_runner,
            logger=logger,
            backup_dir=config.backup_dir,
            stamp=self.stamp,
        )
        self.executor = UpdateExecutor(
            apt_service=self.apt_service,
            flatpak_service=self.flatpak_service,
            journal_service=self.journal_service,
            logger=logger,
        )
        self.restart_decision = RestartDecision(
            interaction=interaction or TerminalInteraction(console),
            system_service=self.system_service,
            logger=logger,
        )
        self.report_service = ReportService(
            report_file=os.path.join(config.backup_dir, f"update-report-{self.stamp}.json"),
            logger=logger,
        )

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.report_service.step_started(name)

        try:
            result = callback(*args, **kwargs)
        except Exception as exc:
            self.report_service.step_finished(name, "failed", error=str(exc))
            raise

        self.report_service.step_finished(name, "success")
        return result

    def preflight(self):
        self.preflight_guard.run_all(self.config, self.probe_targets)

    def wait_for_package_manager(self) -> int:
        return self.lock_waiter.wait_for_exclusive_access(self.config.lock_timeout)

    def update(self):
        self.mutation_started = not self.config.dry_run
        return self.executor.run(self.config)

    def summarize(self, pre_snapshot, post_snapshot):
        logger.info("Building package change summary...")
        change_set = diff_snapshots(pre_snapshot, post_snapshot)
        if not change_set:
            logger.info(
                "No package changes detected (possibly only Flatpak, security or config updates)."
            )
            return change_set

        logger.info("Changed packages:")
        for line in format_change_lines(change_set):
            logger.info("  %s", line)
        if console.is_terminal:
            console.print(build_change_table(change_set))
        return change_set

    def repair(self, result: RunResult):
        """Finish half-configured package installations after an abnormal stop."""
        if not self.mutation_started:
            return
        result.repair_attempted = True
        logger.error("An error occurred. Trying to repair dpkg (dpkg --configure -a)...")
        repair_result = self.apt_service.configure_pending()
        if not repair_result.ok:
            logger.warning("dpkg repair did not succeed (%s).", repair_result.status.value)

    def execute(self) -> RunResult:
        result = RunResult(run_id=self.run_id, started_at=self.started_at.isoformat())
        self.report_service.start_run(
            run_id=self.run_id,
            started_at=self.started_at.astimezone().isoformat(),
            config=asdict(self.config),
        )

        try:
            logger.info(
                "==== System update started: %s ====",
                self.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            )

            try:
                self._run_step("preflight", self.preflight)
                self._run_step("wait_for_package_manager", self.wait_for_package_manager)
            except UpdaterError as exc:
                result.guard_failure = type(exc).__name__
                raise

            pre_snapshot = self._run_step("snapshot_pre", self.snapshot_service.capture, "before")
            result.backups = self._run_step("backup", self.backup_service.run_all, self.config)
            result.executor = self._run_step("update", self.update)

            if self.config.dry_run:
                logger.info("DRY-RUN finished. No changes were made.")
            else:
                post_snapshot = self._run_step(
                    "snapshot_post", self.snapshot_service.capture, "after"
                )
                result.change_set = self._run_step(
                    "diff", self.summarize, pre_snapshot, post_snapshot
                )

            result.reboot_required_marker = self.system_service.reboot_required()
            if result.reboot_required_marker:
                logger.warning(
                    "System reports that a restart is required (%s exists).",
                    self.system_service.reboot_marker,
                )

            result.restart_state = self._run_step(
                "restart_decision",
                self.restart_decision.decide,
                result.change_set,
                dry_run=self.config.dry_run,
            )
            result.kernel_changed = not self.config.dry_run and is_kernel_change(result.change_set)

            logger.info("==== Finished: %s ====", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
            result.status = "success"
            result.exit_code = 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            self.repair(result)
            result.status = "aborted"
            result.error = "Operation cancelled by user."
            result.exit_code = 1
        except UpdaterError as exc:
            self.repair(result)
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            result.status = "failed"
            result.error = str(exc)
            result.exit_code = 1
        except Exception as exc:
            self.repair(result)
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            result.status = "failed"
            result.error = str(exc)
            result.exit_code = 1
        finally:
            if result.guard_failure != PrivilegeError.__name__:
                report_path = self.report_service.finalize(result)
                if report_path:
                    logger.debug("Run report written to %s", report_path)

        return result

    def run(self) -> int:
        return self.execute().exit_code
