"""Point-in-time backups taken before packages change."""

import os
import tarfile
from typing import Dict, Optional

from hostupdater.constants import BACKUP_FILE_MODE


class BackupService:
    """Writes package manifests and an optional configuration archive.

    Every artifact carries the run stamp, so files from one run never collide
    and runs sort chronologically by name. Each backup is best-effort: a
    failure is logged as a warning and the next backup still runs.
    """

    def __init__(self, apt_service, command_runner, logger, backup_dir: str, stamp: str):
        self.apt_service = apt_service
        self.command_runner = command_runner
        self.logger = logger
        self.backup_dir = backup_dir
        self.stamp = stamp

    @property
    def full_manifest_path(self) -> str:
        return os.path.join(self.backup_dir, f"installed-packages-{self.stamp}.list")

    @property
    def manual_manifest_path(self) -> str:
        return os.path.join(self.backup_dir, f"manual-packages-{self.stamp}.list")

    @property
    def config_archive_path(self) -> str:
        return os.path.join(self.backup_dir, f"etc-backup-{self.stamp}.tar.gz")

    def save_full_manifest(self) -> Optional[str]:
        self.logger.info("Saving package list to %s", self.full_manifest_path)
        result = self.apt_service.export_selections()
        if not result.ok:
            self.logger.warning("Could not save package list (%s).", result.status.value)
            return None
        return self._write(self.full_manifest_path, result.stdout, "package list")

    def save_manual_manifest(self) -> Optional[str]:
        if not self.command_runner.is_available("apt-mark"):
            self.logger.warning("apt-mark not found, skipping manual package list.")
            return None

        self.logger.info("Saving manually installed packages to %s", self.manual_manifest_path)
        result = self.apt_service.export_manual()
        if not result.ok:
            self.logger.warning("Could not save manual package list (%s).", result.status.value)
            return None
        return self._write(self.manual_manifest_path, result.stdout, "manual package list")

    def archive_config_dir(self, config_dir: str) -> Optional[str]:
        path = self.config_archive_path
        self.logger.info("Archiving %s to %s (this may take a while)...", config_dir, path)
        try:
            os.makedirs(self.backup_dir, exist_ok=True)
            with tarfile.open(path, "w:gz") as archive:
                archive.add(config_dir, arcname=os.path.basename(config_dir.rstrip("/")) or "etc")
            os.chmod(path, BACKUP_FILE_MODE)
        except (OSError, tarfile.TarError) as exc:
            self.logger.warning("Backup of %s failed: %s", config_dir, exc)
            if os.path.exists(path):
                try:
                    os.remove(path)
                except OSError:
                    pass
            return None
        return path

    def run_all(self, config) -> Dict[str, str]:
        artifacts: Dict[str, str] = {}

        full_manifest = self.save_full_manifest()
        if full_manifest:
            artifacts["full_manifest"] = full_manifest

        manual_manifest = self.save_manual_manifest()
        if manual_manifest:
            artifacts["manual_manifest"] = manual_manifest

        if config.backup_etc:
            config_archive = self.archive_config_dir(config.config_dir)
            if config_archive:
                artifacts["config_archive"] = config_archive

        return artifacts

    def _write(self, path: str, content: str, label: str) -> Optional[str]:
        try:
            os.makedirs(self.backup_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as file_obj:
                file_obj.write(content)
            os.chmod(path, BACKUP_FILE_MODE)
        except OSError as exc:
            self.logger.warning("Could not write %s to %s: %s", label, path, exc)
            return None
        return path
