"""Itinerary merge: days by id, and the events inside shared days.

A day present on both sides is not picked wholesale.  Its scalar fields
(label, theme, location ...) come from the newer day, its ``events`` are
merged record by record, and the result is re-sorted by ``order`` so the
display sequence does not depend on which side's list the merge walked
first.  The merged day's ``updated_at`` is the newer of the two.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from trip_sync.models import Day, Event
from trip_sync.sync.merger import merge_records, pick_newer
from trip_sync.sync.models import MergeAction, RecordOutcome

logger = logging.getLogger(__name__)


def sort_events(events: Sequence[Event]) -> list[Event]:
    """Return *events* ordered by ``order``; equal values keep their order."""
    return sorted(events, key=lambda event: event.order)


def merge_day(
    local: Day, remote: Day
) -> tuple[Day, list[RecordOutcome]]:
    """Merge two versions of the same day.

    Returns:
        ``(merged_day, outcomes)`` where *outcomes* holds the day's own
        ``NESTED`` outcome followed by one outcome per event.
    """
    base, scalar_action = pick_newer(local, remote)
    events_name = f"itinerary[{local.id}].events"
    events, event_outcomes = merge_records(
        local.events, remote.events, collection=events_name
    )
    merged = base.model_copy(
        update={
            "events": sort_events(events),
            "updated_at": max(local.updated_at, remote.updated_at),
        }
    )
    side = "remote" if scalar_action == MergeAction.REMOTE_NEWER else "local"
    day_outcome = RecordOutcome(
        collection="itinerary",
        record_id=local.id,
        action=MergeAction.NESTED,
        local_updated_at=local.updated_at,
        remote_updated_at=remote.updated_at,
        detail=f"day fields from {side}",
        side=side,
    )
    return merged, [day_outcome, *event_outcomes]


def merge_itinerary(
    local: Sequence[Day], remote: Sequence[Day]
) -> tuple[list[Day], list[RecordOutcome]]:
    """Merge two itineraries.

    Days are unioned by id exactly like ``merge_records``; days found on
    both sides are replaced by ``merge_day()``.

    Returns:
        ``(days, outcomes)``.  Day order is local order followed by
        remote-only days.
    """
    days, day_outcomes = merge_records(local, remote, collection="itinerary")
    local_by_id = {day.id: day for day in local}
    remote_by_id = {day.id: day for day in remote}

    merged: list[Day] = []
    outcomes: list[RecordOutcome] = []
    for day, outcome in zip(days, day_outcomes):
        if day.id in local_by_id and day.id in remote_by_id:
            nested_day, nested_outcomes = merge_day(
                local_by_id[day.id], remote_by_id[day.id]
            )
            merged.append(nested_day)
            outcomes.extend(nested_outcomes)
        else:
            merged.append(day)
            outcomes.append(outcome)

    logger.debug(
        "Merged itinerary: %d days (%d merged event by event)",
        len(merged),
        sum(1 for o in outcomes if o.action == MergeAction.NESTED),
    )
    return merged, outcomes
