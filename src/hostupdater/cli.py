import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    DEFAULT_APT_LOCK_TIMEOUT,
    DEFAULT_BACKUP_DIR,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    DEFAULT_JOURNAL_DAYS,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_LOGFILE,
    DEFAULT_MIN_FREE_MB,
    LOGFILE_MODE,
)
from .core import HostUpdater, UpdaterError
from .models import RunConfig
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def _attach_logfile(logger: logging.Logger, log_file: str, verbose: bool):
    try:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        with open(log_file, "a", encoding="utf-8"):
            pass
        os.chmod(log_file, LOGFILE_MODE)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not open log file %s: %s", log_file, exc)
        return None

    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.addHandler(file_handler)
    return file_handler


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
)


@click.command()
@click.option(
    "--no-flatpak",
    "--skip-flatpak",
    "skip_flatpak",
    is_flag=True,
    default=None,
    help="Skip Flatpak updates.",
)
@click.option(
    "--security-only",
    is_flag=True,
    default=None,
    help="Install security updates only (via unattended-upgrade).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Install nothing, only show available updates (APT & Flatpak).",
)
@click.option(
    "--backup-etc",
    is_flag=True,
    default=None,
    help="Archive the configuration directory (/etc) as a tarball before updating.",
)
@click.option(
    "--min-free-mb",
    type=click.IntRange(min=0),
    default=None,
    help=f"Minimum free space on / in MB (default: {DEFAULT_MIN_FREE_MB}).",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=0),
    default=None,
    help=f"Seconds to wait for APT/dpkg locks to be released (default: {DEFAULT_LOCK_TIMEOUT}).",
)
@click.option(
    "--journal-days",
    type=click.IntRange(min=0),
    default=None,
    help=f"Vacuum journald logs older than N days, 0 disables (default: {DEFAULT_JOURNAL_DAYS}).",
)
@click.option(
    "--logfile",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Path to the log file (default: {DEFAULT_LOGFILE}).",
)
@click.option(
    "--backup-dir",
    type=click.Path(file_okay=False),
    default=None,
    help=f"Directory for package lists, archives and run reports (default: {DEFAULT_BACKUP_DIR}).",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
def main(
    skip_flatpak,
    security_only,
    dry_run,
    backup_etc,
    min_free_mb,
    timeout,
    journal_days,
    logfile,
    backup_dir,
    config,
    verbose,
):
    """Update APT packages, Flatpaks and journald retention on this host."""
    logger = logging.getLogger("hostupdater")

    try:
        resolved_config = config
        if resolved_config is None and os.path.exists(DEFAULT_CONFIG_FILE):
            resolved_config = DEFAULT_CONFIG_FILE
        config_values = ConfigLoader().load(resolved_config)

        run_config = RunConfig(
            skip_flatpak=bool(_resolve_option(skip_flatpak, config_values, "skip_flatpak", False)),
            security_only=bool(
                _resolve_option(security_only, config_values, "security_only", False)
            ),
            dry_run=bool(_resolve_option(dry_run, config_values, "dry_run", False)),
            backup_etc=bool(_resolve_option(backup_etc, config_values, "backup_etc", False)),
            min_free_mb=_resolve_option(
                min_free_mb, config_values, "min_free_mb", DEFAULT_MIN_FREE_MB
            ),
            lock_timeout=_resolve_option(timeout, config_values, "timeout", DEFAULT_LOCK_TIMEOUT),
            journal_days=_resolve_option(
                journal_days, config_values, "journal_days", DEFAULT_JOURNAL_DAYS
            ),
            logfile=str(_resolve_option(logfile, config_values, "logfile", DEFAULT_LOGFILE)),
            apt_lock_timeout=_resolve_option(
                None, config_values, "apt_lock_timeout", DEFAULT_APT_LOCK_TIMEOUT
            ),
            backup_dir=str(
                _resolve_option(backup_dir, config_values, "backup_dir", DEFAULT_BACKUP_DIR)
            ),
            config_dir=str(_resolve_option(None, config_values, "config_dir", DEFAULT_CONFIG_DIR)),
            verbose=bool(_resolve_option(verbose, config_values, "verbose", False)),
        )
    except UpdaterError as exc:
        raise click.ClickException(str(exc)) from exc

    if run_config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    file_handler = _attach_logfile(logger, run_config.logfile, run_config.verbose)

    try:
        exit_code = HostUpdater(run_config).run()
    finally:
        if file_handler is not None:
            logger.removeHandler(file_handler)
            file_handler.close()

    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
