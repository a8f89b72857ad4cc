"""Preflight checks that run before any mutating action."""

import shutil
from typing import Optional, Sequence

import requests

from hostupdater.constants import PACKAGE_STATE_PATH, PROBE_TARGETS, PROBE_TIMEOUT_SECONDS
from hostupdater.errors import ConnectivityError, InsufficientSpaceError, PrivilegeError
from hostupdater.errors_catalog import actionable_error


class PreflightGuard:
    """Verifies privilege, network reachability and free storage.

    Every check only observes the host. A failed check raises one of the fatal
    ``UpdaterError`` subclasses and the run stops before touching packages.
    """

    def __init__(
        self,
        system_service,
        logger,
        requests_module=requests,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
    ):
        self.system_service = system_service
        self.logger = logger
        self.requests = requests_module
        self.probe_timeout = probe_timeout

    def check_privilege(self):
        if not self.system_service.is_root():
            raise PrivilegeError(actionable_error("not_root"))
        self.logger.debug("Running with administrative rights.")

    def check_connectivity(self, probe_targets: Sequence[str] = PROBE_TARGETS):
        self.logger.info("Checking internet connection...")
        last_error: Optional[Exception] = None
        for target in probe_targets:
            try:
                response = self.requests.head(
                    target,
                    timeout=self.probe_timeout,
                    allow_redirects=False,
                )
                response.close()
                self.logger.info("Internet connection ok (%s).", target)
                return target
            except self.requests.RequestException as exc:
                self.logger.debug("Probe %s failed: %s", target, exc)
                last_error = exc

        self.logger.debug("Last probe error: %s", last_error)
        raise ConnectivityError(
            actionable_error("no_connectivity", targets=", ".join(probe_targets))
        )

    def check_free_space(self, min_mb: int, path: str = PACKAGE_STATE_PATH) -> int:
        self.logger.info("Checking free space on %s (min. %s MB)...", path, min_mb)
        free_mb = shutil.disk_usage(path).free // (1024 * 1024)
        if free_mb < min_mb:
            raise InsufficientSpaceError(
                actionable_error(
                    "insufficient_space",
                    path=path,
                    free_mb=str(free_mb),
                    min_mb=str(min_mb),
                )
            )
        self.logger.info("Free space ok: %s MB.", free_mb)
        return free_mb

    def run_all(self, config, probe_targets: Sequence[str] = PROBE_TARGETS):
        self.check_privilege()
        self.check_connectivity(probe_targets)
        self.check_free_space(config.min_free_mb)
