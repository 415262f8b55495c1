"""Dataset merge engine.

Combines two complete trip snapshots into one:

1. Loads each side into a ``Dataset`` (raw mappings go through
   ``load_snapshot`` so malformed records are skipped one by one; the
   local side fills in missing ``updatedAt`` values with 0).
2. Merges ``itinerary`` with the nested day/event merger.
3. Merges ``expenses``, ``todos``, ``backup_spots`` and ``gas_stations``
   with the plain record merger.
4. Takes ``trip_name`` from the snapshot with the newer ``last_updated``
   (tie keeps local) and ``settings`` from local.
5. Sets ``last_updated`` to the newer of the two snapshots.

The engine is pure: no I/O, no shared state, inputs are never mutated.
Record-level problems never raise; only a remote value that is not a
dataset at all (``SnapshotError``) propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Union

from trip_sync.models import Dataset
from trip_sync.snapshot import LoadedSnapshot, RejectedRecord, load_snapshot
from trip_sync.sync.itinerary import merge_itinerary
from trip_sync.sync.merger import merge_records
from trip_sync.sync.models import (
    MergeAction,
    MergeReport,
    MergeResult,
    RecordOutcome,
)

logger = logging.getLogger(__name__)

#: Collections merged with the plain record merger.
FLAT_COLLECTIONS = ("expenses", "todos", "backup_spots", "gas_stations")

DatasetLike = Union[Dataset, LoadedSnapshot, Mapping[str, Any]]


def _as_dataset(
    value: DatasetLike, source: str, lenient: bool = False
) -> tuple[Dataset, list[RejectedRecord]]:
    if isinstance(value, LoadedSnapshot):
        return value.dataset, list(value.rejected)
    loaded = load_snapshot(value, source=source, lenient=lenient)
    return loaded.dataset, loaded.rejected


def _rejected_outcomes(
    rejected: list[RejectedRecord], side: str
) -> list[RecordOutcome]:
    return [
        RecordOutcome(
            collection=r.collection,
            record_id=r.record_id,
            action=MergeAction.REJECTED,
            detail=f"{side}: {r.reason}",
            side=side,
        )
        for r in rejected
    ]


def merge_with_report(
    local: DatasetLike, remote: DatasetLike
) -> MergeResult:
    """Merge two snapshots and describe every decision taken.

    Args:
        local: The caller's own dataset, its JSON-shaped dict, or a
            ``LoadedSnapshot`` whose rejections are carried into the
            report.  A dict is loaded leniently: records saved before
            timestamps existed count as ``updatedAt`` 0.
        remote: The other traveller's dataset, in the same forms.
            A dict is loaded strictly.

    Returns:
        ``MergeResult`` with the merged ``Dataset`` and a ``MergeReport``.

    Raises:
        SnapshotError: If either side is not shaped like a dataset.
    """
    started_at = datetime.now(timezone.utc).isoformat()

    local_ds, local_rejected = _as_dataset(local, "local", lenient=True)
    remote_ds, remote_rejected = _as_dataset(remote, "remote")

    outcomes: list[RecordOutcome] = []
    outcomes.extend(_rejected_outcomes(local_rejected, "local"))
    outcomes.extend(_rejected_outcomes(remote_rejected, "remote"))

    itinerary, day_outcomes = merge_itinerary(
        local_ds.itinerary, remote_ds.itinerary
    )
    outcomes.extend(day_outcomes)
    merged: dict[str, Any] = {"itinerary": itinerary}

    for name in FLAT_COLLECTIONS:
        records, record_outcomes = merge_records(
            local_ds.collection(name),
            remote_ds.collection(name),
            collection=name,
        )
        merged[name] = records
        outcomes.extend(record_outcomes)

    if remote_ds.last_updated > local_ds.last_updated:
        trip_name, trip_name_from = remote_ds.trip_name, "remote"
    else:
        trip_name, trip_name_from = local_ds.trip_name, "local"

    last_updated = max(local_ds.last_updated, remote_ds.last_updated)
    dataset = Dataset(
        trip_name=trip_name,
        settings=local_ds.settings,
        last_updated=last_updated,
        **merged,
    )
    newest_record = dataset.max_record_timestamp()
    if newest_record > last_updated:
        logger.debug(
            "lastUpdated %d is older than newest record %d; raising it",
            last_updated,
            newest_record,
        )
        dataset = dataset.model_copy(update={"last_updated": newest_record})

    report = MergeReport(
        started_at=started_at,
        completed_at=datetime.now(timezone.utc).isoformat(),
        outcomes=outcomes,
        trip_name_from=trip_name_from,
        local_last_updated=local_ds.last_updated,
        remote_last_updated=remote_ds.last_updated,
        last_updated=dataset.last_updated,
    )
    logger.info(
        "Merged datasets: %d records, %d from remote, %d rejected",
        dataset.record_count(),
        len(report.added_from_remote) + len(report.updated_from_remote),
        len(report.rejected),
    )
    return MergeResult(dataset=dataset, report=report)


def merge(local: DatasetLike, remote: DatasetLike) -> Dataset:
    """Merge *remote* into *local* and return the merged ``Dataset``.

    See ``merge_with_report()`` for the rules.  Neither input is modified.
    """
    return merge_with_report(local, remote).dataset
