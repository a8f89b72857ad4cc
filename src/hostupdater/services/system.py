"""Host-level queries and actions for hostupdater."""

import os

from hostupdater.constants import REBOOT_REQUIRED_MARKER
from hostupdater.models import ToolResult


class SystemService:
    """Privilege, reboot marker and restart helpers."""

    def __init__(self, command_runner, logger, reboot_marker: str = REBOOT_REQUIRED_MARKER):
        self.command_runner = command_runner
        self.logger = logger
        self.reboot_marker = reboot_marker

    def is_root(self) -> bool:
        geteuid = getattr(os, "geteuid", None)
        if geteuid is None:
            return False
        return geteuid() == 0

    def reboot_required(self) -> bool:
        return os.path.exists(self.reboot_marker)

    def reboot(self) -> ToolResult:
        result = self.command_runner.invoke(["systemctl", "reboot"])
        if result.ok:
            return result
        self.logger.warning("systemctl reboot failed, falling back to reboot.")
        return self.command_runner.invoke(["reboot"])
