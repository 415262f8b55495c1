"""Load JSON-shaped trip data into a validated ``Dataset`` snapshot.

The loader separates two kinds of damage:

* **Top-level damage** (not a mapping, a collection that is not a list,
  a non-integer ``lastUpdated``) means the input is not a dataset at all.
  It raises ``SnapshotError`` and nothing is loaded.
* **Record damage** (missing ``id`` or ``updatedAt``, bad enum value,
  non-numeric timestamp ...) is scoped to the record.  The record is
  dropped, a ``RejectedRecord`` describes it, and loading continues.

Events are validated one by one before their day, so a single malformed
event never takes its whole day down.

The device app only started stamping records with ``updatedAt`` after
its first release, and its built-in defaults still carry none (the
default day has no ``id`` either).  Loading the caller's own copy with
``lenient=True`` fills those gaps instead of dropping the records: a
missing ``updatedAt`` becomes 0 and a day without an ``id`` gets
``day-<n>``.  Data received from someone else is always loaded strictly.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from trip_sync.models import COLLECTIONS, Dataset, Day, Event, Settings

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when raw data does not have the shape of a dataset."""


class RejectedRecord(BaseModel):
    """A record dropped during loading.

    Attributes:
        collection: Collection name, e.g. ``gas_stations`` or
            ``itinerary[d1].events``.
        index: Position of the record in its source list.
        record_id: The record's ``id`` when one could be read.
        reason: Short validation message.
    """

    collection: str
    index: int
    record_id: str | None = None
    reason: str

    model_config = {"frozen": True}


class LoadedSnapshot(BaseModel):
    """Result of ``load_snapshot()``."""

    dataset: Dataset
    rejected: list[RejectedRecord] = []

    model_config = {"frozen": True}


def _wire_name(name: str) -> str:
    """Return the JSON key for collection attribute *name*."""
    return to_camel(name)


def _describe(exc: ValidationError) -> str:
    """Collapse a pydantic error into one line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "record"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _record_id(raw: Any) -> str | None:
    if isinstance(raw, Mapping):
        value = raw.get("id")
        if isinstance(value, str) and value:
            return value
    return None


def _validate_record(
    model: type[BaseModel],
    raw: Any,
    collection: str,
    index: int,
    rejected: list[RejectedRecord],
) -> BaseModel | None:
    """Validate one record; on failure append to *rejected* and return None."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        reason = _describe(exc)
    if not isinstance(raw, Mapping):
        reason = f"expected an object, got {type(raw).__name__}"
    rejection = RejectedRecord(
        collection=collection,
        index=index,
        record_id=_record_id(raw),
        reason=reason,
    )
    logger.warning(
        "Skipping malformed record %s[%d] (id=%s): %s",
        collection,
        index,
        rejection.record_id,
        reason,
    )
    rejected.append(rejection)
    return None


def _fill_missing(raw: Any, day_id: str | None = None) -> Any:
    """Return *raw* with a zero ``updatedAt`` (and *day_id*) where absent."""
    if not isinstance(raw, Mapping):
        return raw
    filled = dict(raw)
    if raw.get("updatedAt", raw.get("updated_at")) is None:
        filled.pop("updated_at", None)
        filled["updatedAt"] = 0
    if day_id is not None and raw.get("id") is None:
        filled["id"] = day_id
    return filled


def _fresh_day_id(index: int, taken: set[str]) -> str:
    day_id = f"day-{index + 1}"
    suffix = 1
    while day_id in taken:
        suffix += 1
        day_id = f"day-{index + 1}-{suffix}"
    return day_id


def _dedupe(records: list, collection: str) -> list:
    """Collapse duplicate identifiers; the last occurrence wins.

    The surviving record keeps the position of the first occurrence.
    """
    by_id: dict[str, Any] = {}
    for record in records:
        if record.id in by_id:
            logger.warning(
                "Duplicate id '%s' in %s; keeping the last occurrence",
                record.id,
                collection,
            )
        by_id[record.id] = record
    return list(by_id.values())


def _load_day(
    raw: Any,
    index: int,
    rejected: list[RejectedRecord],
    lenient: bool = False,
) -> Day | None:
    """Validate a day, filtering its events individually first."""
    if not isinstance(raw, Mapping) or not isinstance(
        raw.get("events", []), list
    ):
        return _validate_record(Day, raw, "itinerary", index, rejected)

    day_id = _record_id(raw) or f"#{index}"
    events_name = f"itinerary[{day_id}].events"
    events: list[Event] = []
    for ev_index, raw_event in enumerate(raw.get("events", [])):
        if lenient:
            raw_event = _fill_missing(raw_event)
        event = _validate_record(
            Event, raw_event, events_name, ev_index, rejected
        )
        if event is not None:
            events.append(event)

    day_data = dict(raw)
    day_data["events"] = _dedupe(events, events_name)
    return _validate_record(Day, day_data, "itinerary", index, rejected)


def load_snapshot(
    raw: Any, *, source: str = "snapshot", lenient: bool = False
) -> LoadedSnapshot:
    """Build a ``Dataset`` from a decoded JSON object.

    Args:
        raw: The decoded JSON value (normally a ``dict``).
        source: Label used in log messages (``"local"``, ``"remote"``,
            a file name ...).
        lenient: Fill a missing ``updatedAt`` with 0 and a missing day
            ``id`` with ``day-<n>`` instead of rejecting the record.  Use
            it only for the caller's own copy.

    Returns:
        A ``LoadedSnapshot`` with the dataset and any rejected records.

    Raises:
        SnapshotError: If *raw* does not have the shape of a dataset.
    """
    if isinstance(raw, Dataset):
        return LoadedSnapshot(dataset=raw)
    if not isinstance(raw, Mapping):
        raise SnapshotError(
            f"{source}: expected a JSON object, got {type(raw).__name__}"
        )

    rejected: list[RejectedRecord] = []
    data: dict[str, Any] = {}

    for name, model in COLLECTIONS.items():
        key = _wire_name(name)
        items = raw.get(key, raw.get(name, []))
        if items is None:
            items = []
        if not isinstance(items, list):
            raise SnapshotError(
                f"{source}: '{key}' must be a list, got {type(items).__name__}"
            )
        records = []
        taken = {_record_id(item) for item in items} - {None}
        for index, item in enumerate(items):
            if lenient:
                day_id = None
                if model is Day and isinstance(item, Mapping):
                    if item.get("id") is None:
                        day_id = _fresh_day_id(index, taken)
                        taken.add(day_id)
                item = _fill_missing(item, day_id)
            if model is Day:
                record = _load_day(item, index, rejected, lenient)
            else:
                record = _validate_record(model, item, name, index, rejected)
            if record is not None:
                records.append(record)
        data[name] = _dedupe(records, name)

    last_updated = raw.get("lastUpdated", raw.get("last_updated", 0))
    if (
        isinstance(last_updated, bool)
        or not isinstance(last_updated, int)
        or last_updated < 0
    ):
        raise SnapshotError(
            f"{source}: 'lastUpdated' must be a non-negative integer, "
            f"got {last_updated!r}"
        )
    data["last_updated"] = last_updated

    trip_name = raw.get("tripName", raw.get("trip_name", ""))
    if not isinstance(trip_name, str):
        raise SnapshotError(f"{source}: 'tripName' must be a string")
    data["trip_name"] = trip_name

    raw_settings = raw.get("settings") or {}
    try:
        data["settings"] = Settings.model_validate(raw_settings)
    except ValidationError as exc:
        logger.warning(
            "%s: invalid settings, using defaults (%s)",
            source,
            _describe(exc),
        )
        data["settings"] = Settings()

    if rejected:
        logger.warning(
            "%s: skipped %d malformed record(s)", source, len(rejected)
        )

    return LoadedSnapshot(dataset=Dataset(**data), rejected=rejected)
