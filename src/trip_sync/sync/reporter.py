"""Merge report formatting functions.

Provides human-readable and machine-readable output for merges:

- ``format_merge_report`` -- full post-merge summary.
- ``format_rejections`` -- one line per skipped remote record.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MergeReport, RecordOutcome

from .models import MergeAction

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _group_by_collection(
    outcomes: list[RecordOutcome],
) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = defaultdict(list)
    for o in outcomes:
        groups[o.collection].append(o.record_id or "?")
    return groups


def format_merge_report(report: MergeReport, dry_run: bool = False) -> str:
    """Format a complete merge report as human-readable text.

    Sections are only included when they contain at least one outcome.
    Records kept from local are summarised by count only.

    Args:
        report: The completed merge report.
        dry_run: Label the report as a preview.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Merge report"
    if dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    added = len(report.added_from_remote)
    updated = len(report.updated_from_remote)
    kept = len(report.kept_local) + len(report.local_only)
    lines.append(
        f"Merged {len(report.outcomes)} records: "
        f"{added} added, {updated} updated from remote, "
        f"{kept} kept local, {len(report.nested)} days merged, "
        f"{len(report.rejected)} rejected"
    )
    lines.append(f"Trip name from: {report.trip_name_from}")
    lines.append("")

    sections = [
        ("Added from remote:", report.added_from_remote),
        ("Updated from remote:", report.updated_from_remote),
    ]
    for title, outcomes in sections:
        if not outcomes:
            continue
        lines.append(title)
        for collection, ids in _group_by_collection(outcomes).items():
            lines.append(f"  {collection}: {', '.join(ids)}")
        lines.append("")

    if report.nested:
        lines.append("Days merged event by event:")
        for o in report.nested:
            lines.append(f"  {o.record_id} ({o.detail})")
        lines.append("")

    if report.rejected:
        lines.append(format_rejections(report))
        lines.append("")

    if not report.changed:
        lines.append("Nothing new from remote.")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_rejections(report: MergeReport) -> str:
    """List every record skipped as malformed, one per line."""
    lines = ["Rejected (malformed):"]
    for o in report.rejected:
        lines.append(f"  {o.collection} id={o.record_id}: {o.detail}")
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: MergeReport) -> dict:
    """Convert a merge report to a structured dict for JSON serialisation.

    Args:
        report: The merge report.

    Returns:
        Dict with timestamps, counts and per-outcome details.  Records
        kept from local without a competing remote version are counted
        but not listed.
    """
    outcomes_list = []
    for o in report.outcomes:
        if o.action == MergeAction.LOCAL_ONLY:
            continue
        entry: dict = {
            "collection": o.collection,
            "id": o.record_id,
            "action": o.action.value,
        }
        if o.local_updated_at is not None:
            entry["local_updated_at"] = o.local_updated_at
        if o.remote_updated_at is not None:
            entry["remote_updated_at"] = o.remote_updated_at
        if o.detail:
            entry["detail"] = o.detail
        if o.side:
            entry["side"] = o.side
        outcomes_list.append(entry)

    return {
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "trip_name_from": report.trip_name_from,
        "last_updated": report.last_updated,
        "counts": {
            "total": len(report.outcomes),
            "added": len(report.added_from_remote),
            "updated": len(report.updated_from_remote),
            "kept_local": len(report.kept_local),
            "local_only": len(report.local_only),
            "days_merged": len(report.nested),
            "rejected": len(report.rejected),
        },
        "outcomes": outcomes_list,
    }
