"""Kernel-change detection and the restart prompt."""

import sys

from hostupdater.constants import KERNEL_PACKAGE_PATTERN
from hostupdater.models import ChangeSet, RestartState

AFFIRMATIVE_ANSWERS = {"y", "yes"}


def is_kernel_change(change_set: ChangeSet) -> bool:
    return any(KERNEL_PACKAGE_PATTERN.match(record.name) for record in change_set)


class TerminalInteraction:
    """Prompts on the attached terminal when both stdin and stdout are TTYs."""

    def __init__(self, console, stdin=None, stdout=None):
        self.console = console
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def is_interactive(self) -> bool:
        try:
            return self.stdin.isatty() and self.stdout.isatty()
        except (AttributeError, ValueError):
            return False

    def ask(self, question: str) -> str:
        try:
            return self.console.input(question)
        except EOFError:
            return ""


class RestartDecision:
    """Decides whether to offer a restart after the update.

    The decision is entered once per run. Only a kernel change on an
    interactive, non-dry run leads to a prompt, and the prompt defaults to
    no: empty or unrecognised input declines.
    """

    PROMPT = "[yellow]Kernel update detected. Restart now? \\[y/N][/yellow] "

    def __init__(self, interaction, system_service, logger):
        self.interaction = interaction
        self.system_service = system_service
        self.logger = logger

    def decide(self, change_set: ChangeSet, dry_run: bool = False) -> RestartState:
        if dry_run or not is_kernel_change(change_set):
            if not dry_run:
                self.logger.info("No kernel update detected, no restart prompt.")
            return RestartState.NO_KERNEL_CHANGE

        if not self.interaction.is_interactive():
            self.logger.warning(
                "Kernel update detected. Restart the system manually to activate the new kernel."
            )
            return RestartState.KERNEL_CHANGED_NONINTERACTIVE

        return self.prompt()

    def prompt(self) -> RestartState:
        self.logger.debug("State: %s", RestartState.KERNEL_CHANGED_AWAITING_INPUT.value)
        answer = (self.interaction.ask(self.PROMPT) or "").strip().lower()

        if answer in AFFIRMATIVE_ANSWERS:
            self.logger.info("Restarting now...")
            result = self.system_service.reboot()
            if not result.ok:
                self.logger.error(
                    "Restart command failed (%s). Restart the system manually "
                    "to activate the new kernel.",
                    result.status.value,
                )
                return RestartState.REBOOT_DECLINED
            return RestartState.REBOOTING

        self.logger.warning(
            "Restart skipped. Please restart soon so the new kernel becomes active."
        )
        return RestartState.REBOOT_DECLINED
