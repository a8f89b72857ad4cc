"""Static paths, tool names and defaults used across hostupdater."""

import re

DEFAULT_LOGFILE = "/var/log/system-update.log"
DEFAULT_LOCK_TIMEOUT = 600
DEFAULT_MIN_FREE_MB = 1024
DEFAULT_JOURNAL_DAYS = 30
DEFAULT_APT_LOCK_TIMEOUT = 30
DEFAULT_BACKUP_DIR = "/root"
DEFAULT_CONFIG_DIR = "/etc"
DEFAULT_CONFIG_FILE = "/etc/hostupdater.yml"

LOGFILE_MODE = 0o640
BACKUP_FILE_MODE = 0o600

PACKAGE_STATE_PATH = "/"

PROBE_TARGETS = ("https://deb.debian.org", "https://1.1.1.1")
PROBE_TIMEOUT_SECONDS = 2

POLL_INTERVAL_SECONDS = 3
PACKAGE_MANAGER_PROCESSES = ("apt", "apt-get", "dpkg")
LOCK_FILES = (
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/dpkg/lock",
    "/var/lib/apt/lists/lock",
    "/var/cache/apt/archives/lock",
)

REBOOT_REQUIRED_MARKER = "/var/run/reboot-required"

KERNEL_PACKAGE_PATTERN = re.compile(
    r"^(linux-(image|headers|modules|modules-extra|generic|virtual|signed|aws|gcp|azure|oem|kvm)"
    r"|linux-image-[0-9])",
    re.IGNORECASE,
)

STAMP_FORMAT = "%Y-%m-%d_%H%M%S"
