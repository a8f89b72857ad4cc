"""Shared domain models for hostupdater."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .constants import (
    DEFAULT_APT_LOCK_TIMEOUT,
    DEFAULT_BACKUP_DIR,
    DEFAULT_CONFIG_DIR,
    DEFAULT_JOURNAL_DAYS,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_LOGFILE,
    DEFAULT_MIN_FREE_MB,
)
from .errors import UpdaterError

ABSENT_LABEL = "absent"


@dataclass(frozen=True)
class RunConfig:
    """Options resolved once at startup and shared read-only by every stage."""

    skip_flatpak: bool = False
    security_only: bool = False
    dry_run: bool = False
    backup_etc: bool = False
    min_free_mb: int = DEFAULT_MIN_FREE_MB
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT
    journal_days: int = DEFAULT_JOURNAL_DAYS
    logfile: str = DEFAULT_LOGFILE
    apt_lock_timeout: int = DEFAULT_APT_LOCK_TIMEOUT
    backup_dir: str = DEFAULT_BACKUP_DIR
    config_dir: str = DEFAULT_CONFIG_DIR
    verbose: bool = False

    def __post_init__(self):
        for name in ("min_free_mb", "lock_timeout", "journal_days", "apt_lock_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise UpdaterError(f"{name} must be a non-negative integer, got {value!r}.")


@dataclass(frozen=True)
class PackageRecord:
    name: str
    version: str


@dataclass(frozen=True)
class Snapshot:
    """Installed packages at one instant, ordered and unique by name."""

    records: Tuple[PackageRecord, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "Snapshot":
        by_name: Dict[str, str] = {}
        for name, version in pairs:
            by_name[name] = version
        return cls(
            records=tuple(PackageRecord(name, by_name[name]) for name in sorted(by_name))
        )

    def as_dict(self) -> Dict[str, str]:
        return {record.name: record.version for record in self.records}

    def names(self) -> List[str]:
        return [record.name for record in self.records]

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ChangeRecord:
    """One package whose version differs between snapshots. ``None`` means absent."""

    name: str
    old_version: Optional[str]
    new_version: Optional[str]

    @property
    def old_label(self) -> str:
        return ABSENT_LABEL if self.old_version is None else self.old_version

    @property
    def new_label(self) -> str:
        return ABSENT_LABEL if self.new_version is None else self.new_version


ChangeSet = Tuple[ChangeRecord, ...]


class ToolStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    NOT_PRESENT = "not_present"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ToolResult:
    """Structured outcome of one external tool invocation."""

    status: ToolStatus
    returncode: Optional[int] = None
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ToolStatus.SUCCESS


@dataclass(frozen=True)
class StepOutcome:
    name: str
    status: ToolStatus
    detail: Optional[str] = None


@dataclass
class ExecutorOutcome:
    mode: str
    steps: List[StepOutcome] = field(default_factory=list)
    pending_upgrades: List[str] = field(default_factory=list)

    def record(self, name: str, status: ToolStatus, detail: Optional[str] = None) -> StepOutcome:
        outcome = StepOutcome(name=name, status=status, detail=detail)
        self.steps.append(outcome)
        return outcome

    def status_of(self, name: str) -> Optional[ToolStatus]:
        for step in self.steps:
            if step.name == name:
                return step.status
        return None


class RestartState(str, Enum):
    NO_KERNEL_CHANGE = "no_kernel_change"
    KERNEL_CHANGED_NONINTERACTIVE = "kernel_changed_noninteractive"
    KERNEL_CHANGED_AWAITING_INPUT = "kernel_changed_awaiting_input"
    REBOOTING = "rebooting"
    REBOOT_DECLINED = "reboot_declined"


@dataclass
class RunResult:
    """Aggregate outcome of one run, filled in as stages complete."""

    run_id: str
    started_at: str
    status: str = "running"
    exit_code: int = 1
    guard_failure: Optional[str] = None
    error: Optional[str] = None
    backups: Dict[str, str] = field(default_factory=dict)
    executor: Optional[ExecutorOutcome] = None
    change_set: ChangeSet = ()
    kernel_changed: bool = False
    reboot_required_marker: bool = False
    restart_state: Optional[RestartState] = None
    repair_attempted: bool = False
