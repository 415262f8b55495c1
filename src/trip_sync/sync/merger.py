"""Last-write-wins merge of two record collections.

Key design choices:

* Records are matched by ``id`` and compared by ``updated_at`` only.
  The whole record from the newer side is kept; fields are never mixed.
* Equal timestamps keep the local record, so the caller's own copy wins
  ties deterministically.
* Output order is local order followed by remote-only records in remote
  order.
* Inputs are never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, TypeVar

from trip_sync.sync.models import MergeAction, RecordOutcome

logger = logging.getLogger(__name__)


class Record(Protocol):
    """Anything with a stable identifier and a last-modified time."""

    @property
    def id(self) -> str: ...  # pragma: no cover

    @property
    def updated_at(self) -> int: ...  # pragma: no cover


R = TypeVar("R", bound=Record)


def pick_newer(local: R, remote: R) -> tuple[R, MergeAction]:
    """Choose between two versions of the same record.

    Returns:
        ``(winner, action)``.  *remote* wins only when its ``updated_at``
        is strictly greater.
    """
    if remote.updated_at > local.updated_at:
        return remote, MergeAction.REMOTE_NEWER
    if remote.updated_at == local.updated_at:
        return local, MergeAction.TIE
    return local, MergeAction.LOCAL_NEWER


def _index(records: Sequence[R], collection: str, side: str) -> dict[str, R]:
    """Key *records* by id.  A repeated id keeps the last one seen."""
    indexed: dict[str, R] = {}
    for record in records:
        if record.id in indexed:
            logger.warning(
                "Duplicate id '%s' in %s %s; using the last occurrence",
                record.id,
                side,
                collection,
            )
        indexed[record.id] = record
    return indexed


def merge_records(
    local: Sequence[R],
    remote: Sequence[R],
    *,
    collection: str,
) -> tuple[list[R], list[RecordOutcome]]:
    """Union two collections, keeping the newer version of shared ids.

    Args:
        local: The caller's own records.
        remote: Records from the other copy of the dataset.
        collection: Name used in outcomes and log messages.

    Returns:
        ``(merged_records, outcomes)`` with exactly one record and one
        outcome per identifier found in either input.
    """
    local_by_id = _index(local, collection, "local")
    remote_by_id = _index(remote, collection, "remote")

    merged: list[R] = []
    outcomes: list[RecordOutcome] = []

    for record_id, local_record in local_by_id.items():
        remote_record = remote_by_id.get(record_id)
        if remote_record is None:
            merged.append(local_record)
            outcomes.append(
                RecordOutcome(
                    collection=collection,
                    record_id=record_id,
                    action=MergeAction.LOCAL_ONLY,
                    local_updated_at=local_record.updated_at,
                )
            )
            continue

        winner, action = pick_newer(local_record, remote_record)
        merged.append(winner)
        outcomes.append(
            RecordOutcome(
                collection=collection,
                record_id=record_id,
                action=action,
                local_updated_at=local_record.updated_at,
                remote_updated_at=remote_record.updated_at,
            )
        )

    for record_id, remote_record in remote_by_id.items():
        if record_id in local_by_id:
            continue
        merged.append(remote_record)
        outcomes.append(
            RecordOutcome(
                collection=collection,
                record_id=record_id,
                action=MergeAction.REMOTE_ONLY,
                remote_updated_at=remote_record.updated_at,
            )
        )

    logger.debug(
        "Merged %s: %d local + %d remote -> %d records",
        collection,
        len(local_by_id),
        len(remote_by_id),
        len(merged),
    )
    return merged, outcomes
