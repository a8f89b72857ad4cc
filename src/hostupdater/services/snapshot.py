"""Installed-package snapshots used for the change summary."""

from typing import List, Tuple

from hostupdater.models import Snapshot


class SnapshotService:
    """Captures (name, version) pairs from the package database."""

    def __init__(self, apt_service, logger):
        self.apt_service = apt_service
        self.logger = logger

    def capture(self, label: str = "") -> Snapshot:
        result = self.apt_service.query_installed()
        if not result.ok:
            self.logger.warning(
                "Could not query installed packages%s (%s). The change summary may be incomplete.",
                f" ({label})" if label else "",
                result.status.value,
            )
            return Snapshot()

        snapshot = Snapshot.from_pairs(self.parse(result.stdout))
        self.logger.debug("Captured %s snapshot: %s packages.", label or "package", len(snapshot))
        return snapshot

    @staticmethod
    def parse(output: str) -> List[Tuple[str, str]]:
        """Parse ``status<TAB>name<TAB>version`` rows, keeping installed packages.

        dpkg-query also lists removed packages whose config files remain
        (``rc``) and packages marked for removal; the second status letter
        is ``i`` only for packages that are actually installed.
        """
        pairs = []
        for line in output.splitlines():
            fields = line.split("\t")
            if len(fields) != 3:
                continue
            status, name, version = (field.strip() for field in fields)
            if len(status) < 2 or status[1] != "i":
                continue
            if not name or not version:
                continue
            pairs.append((name, version))
        return pairs
