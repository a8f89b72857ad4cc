"""Before/after comparison of package snapshots."""

from typing import List

from rich.table import Table

from hostupdater.models import ChangeRecord, ChangeSet, Snapshot


def diff_snapshots(pre: Snapshot, post: Snapshot) -> ChangeSet:
    """Full outer join of two snapshots by package name.

    Returns one ChangeRecord per name whose version differs, sorted by name.
    A side where the package is missing is reported as ``None``.
    """
    before = pre.as_dict()
    after = post.as_dict()

    changes = []
    for name in sorted(set(before) | set(after)):
        old_version = before.get(name)
        new_version = after.get(name)
        if old_version != new_version:
            changes.append(ChangeRecord(name, old_version, new_version))
    return tuple(changes)


def format_change_lines(change_set: ChangeSet) -> List[str]:
    return [
        f"{record.name:<40} {record.old_label} -> {record.new_label}" for record in change_set
    ]


def build_change_table(change_set: ChangeSet) -> Table:
    table = Table(title="Changed packages")
    table.add_column("Package", style="cyan")
    table.add_column("Before")
    table.add_column("After", style="green")
    for record in change_set:
        table.add_row(record.name, record.old_label, record.new_label)
    return table
