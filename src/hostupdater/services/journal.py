"""journald retention adapter for hostupdater."""

from hostupdater.models import ToolResult


class JournalService:
    COMMAND = "journalctl"

    def __init__(self, command_runner):
        self.command_runner = command_runner

    def is_present(self) -> bool:
        return self.command_runner.is_available(self.COMMAND)

    def vacuum(self, older_than_days: int) -> ToolResult:
        return self.command_runner.invoke([self.COMMAND, f"--vacuum-time={older_than_days}d"])
