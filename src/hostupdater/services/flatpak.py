"""Flatpak adapter for hostupdater."""

from hostupdater.models import ToolResult


class FlatpakService:
    """Sandboxed application updates; presence is detected at runtime."""

    COMMAND = "flatpak"

    def __init__(self, command_runner):
        self.command_runner = command_runner

    def is_present(self) -> bool:
        return self.command_runner.is_available(self.COMMAND)

    def list_updates(self) -> ToolResult:
        return self.command_runner.invoke([self.COMMAND, "remote-ls", "--updates"])

    def apply_updates(self) -> ToolResult:
        return self.command_runner.invoke([self.COMMAND, "update", "-y", "--noninteractive"])
