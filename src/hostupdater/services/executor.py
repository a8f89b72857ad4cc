"""Update pipeline against APT, Flatpak and journald."""

from hostupdater.errors import IndexRefreshError
from hostupdater.errors_catalog import actionable_error
from hostupdater.models import ExecutorOutcome, ToolResult, ToolStatus


class UpdateExecutor:
    """Runs refresh, upgrade, cleanup, Flatpak and journal steps.

    Only the index refresh is fatal. Every later step is attempted on its own
    and a failure is recorded as a warning so the remaining steps still run.
    """

    def __init__(self, apt_service, flatpak_service, journal_service, logger):
        self.apt_service = apt_service
        self.flatpak_service = flatpak_service
        self.journal_service = journal_service
        self.logger = logger

    @staticmethod
    def resolve_mode(config) -> str:
        if config.dry_run:
            return "dry_run"
        if config.security_only:
            return "security_only"
        return "full"

    def run(self, config) -> ExecutorOutcome:
        outcome = ExecutorOutcome(mode=self.resolve_mode(config))

        self.refresh_index(outcome)

        if outcome.mode == "dry_run":
            self.list_pending(outcome)
        else:
            if outcome.mode == "security_only":
                self.security_upgrade(outcome)
            else:
                self.full_upgrade(outcome)
            self._attempt(
                outcome,
                "remove_unneeded",
                "APT: removing packages no longer needed",
                self.apt_service.remove_unneeded,
            )
            self._attempt(
                outcome,
                "clean_cache",
                "APT: cleaning package cache",
                self.apt_service.clean_cache,
            )

        self.update_flatpak(config, outcome)
        self.vacuum_journal(config, outcome)
        return outcome

    def refresh_index(self, outcome: ExecutorOutcome):
        self.logger.info("APT: refreshing package index")
        result = self.apt_service.refresh_index()
        outcome.record("refresh_index", result.status)
        if not result.ok:
            raise IndexRefreshError(actionable_error("index_refresh_failed"))

    def list_pending(self, outcome: ExecutorOutcome):
        self.logger.info("DRY-RUN: listing available upgrades")
        outcome.pending_upgrades = self.apt_service.list_upgradable()
        for line in outcome.pending_upgrades:
            self.logger.info("  %s", line)
        if not outcome.pending_upgrades:
            self.logger.info("No upgrades pending.")
        outcome.record(
            "list_upgradable",
            ToolStatus.SUCCESS,
            detail=str(len(outcome.pending_upgrades)),
        )

    def security_upgrade(self, outcome: ExecutorOutcome):
        self.logger.info("Security updates only: using unattended-upgrade")
        self.logger.info("Skipping regular and distribution upgrade in security-only mode.")
        result = self.apt_service.security_upgrade()
        outcome.record("security_upgrade", result.status)
        if not result.ok:
            self.logger.warning("unattended-upgrade reported an error.")

    def full_upgrade(self, outcome: ExecutorOutcome):
        self._attempt(
            outcome,
            "upgrade_conservative",
            "APT: upgrade without dependency changes",
            lambda: self.apt_service.upgrade("conservative"),
        )
        self._attempt(
            outcome,
            "upgrade_full",
            "APT: distribution upgrade (new/removed dependencies allowed)",
            lambda: self.apt_service.upgrade("full"),
        )

    def update_flatpak(self, config, outcome: ExecutorOutcome):
        if config.skip_flatpak:
            self.logger.info("Flatpak updates disabled (--no-flatpak).")
            outcome.record("flatpak", ToolStatus.SKIPPED, detail="disabled")
            return

        if not self.flatpak_service.is_present():
            self.logger.info("Flatpak not installed, step skipped.")
            outcome.record("flatpak", ToolStatus.NOT_PRESENT)
            return

        if config.dry_run:
            self._attempt(
                outcome,
                "flatpak",
                "DRY-RUN: listing available Flatpak updates",
                self.flatpak_service.list_updates,
            )
        else:
            self._attempt(
                outcome,
                "flatpak",
                "Flatpak: applying updates",
                self.flatpak_service.apply_updates,
            )

    def vacuum_journal(self, config, outcome: ExecutorOutcome):
        if config.journal_days <= 0:
            return
        if config.dry_run:
            self.logger.info("DRY-RUN: journald cleanup skipped.")
            outcome.record("journal_vacuum", ToolStatus.SKIPPED, detail="dry_run")
            return
        if not self.journal_service.is_present():
            outcome.record("journal_vacuum", ToolStatus.NOT_PRESENT)
            return

        self._attempt(
            outcome,
            "journal_vacuum",
            f"journald: removing logs older than {config.journal_days} days",
            lambda: self.journal_service.vacuum(config.journal_days),
        )

    def _attempt(self, outcome: ExecutorOutcome, name: str, message: str, action) -> ToolResult:
        self.logger.info(message)
        result = action()
        outcome.record(name, result.status)
        if not result.ok:
            self.logger.warning(
                "Step '%s' did not succeed (%s). Continuing.",
                name,
                result.status.value,
            )
        return result
