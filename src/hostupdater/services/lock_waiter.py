"""Waits until no other process is using the package database."""

import os
import time
from typing import Sequence

from hostupdater.constants import LOCK_FILES, PACKAGE_MANAGER_PROCESSES, POLL_INTERVAL_SECONDS
from hostupdater.errors import LockTimeoutError
from hostupdater.errors_catalog import actionable_error


class ExclusiveAccessWaiter:
    """Polls process and lock-holder signals until both are clear.

    The waiter only observes. It never deletes a lock file and never signals
    the process holding one.
    """

    def __init__(
        self,
        command_runner,
        logger,
        poll_interval: int = POLL_INTERVAL_SECONDS,
        process_names: Sequence[str] = PACKAGE_MANAGER_PROCESSES,
        lock_files: Sequence[str] = LOCK_FILES,
    ):
        self.command_runner = command_runner
        self.logger = logger
        self.poll_interval = poll_interval
        self.process_names = tuple(process_names)
        self.lock_files = tuple(lock_files)
        self._lsof_warning_emitted = False

    def package_manager_running(self) -> bool:
        for name in self.process_names:
            result = self.command_runner.run(
                ["pgrep", "-x", name], check=False, capture_output=True
            )
            if result.returncode == 0:
                self.logger.debug("Package manager process running: %s", name)
                return True
        return False

    def lock_held(self) -> bool:
        existing = [path for path in self.lock_files if os.path.exists(path)]
        if not existing:
            return False

        if not self.command_runner.is_available("lsof"):
            if not self._lsof_warning_emitted:
                self.logger.warning(
                    "lsof is not installed; lock holders cannot be detected, "
                    "only running package manager processes."
                )
                self._lsof_warning_emitted = True
            return False

        for path in existing:
            result = self.command_runner.run(["lsof", path], check=False, capture_output=True)
            if result.returncode == 0:
                self.logger.debug("Lock held: %s", path)
                return True
        return False

    def is_busy(self) -> bool:
        return self.package_manager_running() or self.lock_held()

    def wait_for_exclusive_access(self, timeout_seconds: int) -> int:
        """Block until the package database is free; return seconds waited."""
        self.logger.info(
            "Checking for running package operations and locks (timeout %ss)...",
            timeout_seconds,
        )
        waited = 0
        while self.is_busy():
            if waited >= timeout_seconds:
                raise LockTimeoutError(
                    actionable_error("lock_timeout", timeout=str(timeout_seconds))
                )
            if waited == 0:
                self.logger.info("Package manager is busy. Waiting...")
            time.sleep(self.poll_interval)
            waited += self.poll_interval

        self.logger.info("Locks are free.")
        return waited
