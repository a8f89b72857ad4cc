"""APT/dpkg adapter for hostupdater."""

from typing import List

from hostupdater.constants import DEFAULT_APT_LOCK_TIMEOUT
from hostupdater.models import ToolResult, ToolStatus

QUERY_FORMAT = "${db:Status-Abbrev}\\t${binary:Package}\\t${Version}\\n"


class AptService:
    """Wraps apt-get, apt, dpkg and unattended-upgrade behind typed results."""

    UPGRADE_COMMANDS = {
        "conservative": "upgrade",
        "full": "dist-upgrade",
    }
    SECURITY_TOOL = "unattended-upgrade"
    SECURITY_PACKAGE = "unattended-upgrades"

    def __init__(self, command_runner, logger, lock_timeout: int = DEFAULT_APT_LOCK_TIMEOUT):
        self.command_runner = command_runner
        self.logger = logger
        self.lock_timeout = lock_timeout

    @property
    def env(self):
        return {"DEBIAN_FRONTEND": "noninteractive"}

    def _apt_get(self, *args: str) -> ToolResult:
        cmd = ["apt-get", f"--option=DPkg::Lock::Timeout={self.lock_timeout}", *args]
        return self.command_runner.invoke(cmd, env=self.env)

    def refresh_index(self) -> ToolResult:
        return self._apt_get("update")

    def upgrade(self, strategy: str) -> ToolResult:
        if strategy not in self.UPGRADE_COMMANDS:
            raise ValueError(f"Unknown upgrade strategy: {strategy}")
        return self._apt_get(self.UPGRADE_COMMANDS[strategy], "-y")

    def remove_unneeded(self) -> ToolResult:
        return self._apt_get("autoremove", "-y")

    def clean_cache(self) -> ToolResult:
        return self._apt_get("autoclean", "-y")

    def install(self, package: str) -> ToolResult:
        return self._apt_get("install", "-y", package)

    def list_upgradable(self) -> List[str]:
        result = self.command_runner.invoke(["apt", "list", "--upgradable"], capture_output=True)
        if not result.ok:
            return []
        return [
            line.strip()
            for line in result.stdout.splitlines()
            if line.strip() and not line.startswith("Listing")
        ]

    def query_installed(self) -> ToolResult:
        return self.command_runner.invoke(
            ["dpkg-query", "-W", f"-f={QUERY_FORMAT}"],
            capture_output=True,
        )

    def export_selections(self) -> ToolResult:
        return self.command_runner.invoke(["dpkg", "--get-selections"], capture_output=True)

    def export_manual(self) -> ToolResult:
        return self.command_runner.invoke(["apt-mark", "showmanual"], capture_output=True)

    def configure_pending(self) -> ToolResult:
        return self.command_runner.invoke(["dpkg", "--configure", "-a"], env=self.env)

    def security_upgrade(self) -> ToolResult:
        if not self.command_runner.is_available(self.SECURITY_TOOL):
            self.logger.info("Installing %s...", self.SECURITY_PACKAGE)
            installed = self.install(self.SECURITY_PACKAGE)
            if not installed.ok:
                self.logger.warning("Could not install %s.", self.SECURITY_PACKAGE)
                return ToolResult(status=ToolStatus.FAILED, returncode=installed.returncode)
        return self.command_runner.invoke([self.SECURITY_TOOL, "-v"], env=self.env)
