"""Pydantic models describing the outcome of a dataset merge.

Defines the data contracts shared by the merger, the itinerary merger,
the engine and the reporter:

- ``MergeAction``: Enum of per-record merge decisions.
- ``RecordOutcome``: Decision taken for one identifier.
- ``MergeReport``: Aggregate outcomes for a full merge.
- ``MergeResult``: The merged dataset plus its report.

All models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from trip_sync.models import Dataset


class MergeAction(str, Enum):
    """Possible decisions for one record identifier."""

    LOCAL_ONLY = "local_only"
    REMOTE_ONLY = "remote_only"
    LOCAL_NEWER = "local_newer"
    REMOTE_NEWER = "remote_newer"
    TIE = "tie"
    NESTED = "nested"
    REJECTED = "rejected"


class RecordOutcome(BaseModel):
    """Decision taken for a single identifier.

    Attributes:
        collection: Collection name (``expenses``,
            ``itinerary[d1].events`` ...).
        record_id: Identifier of the record, when known.
        action: What the merge did.
        local_updated_at: Local timestamp, if the record exists locally.
        remote_updated_at: Remote timestamp, if the record exists remotely.
        detail: Extra context (the rejection reason, the side whose
            scalar fields won for a nested day ...).
        side: ``"local"`` or ``"remote"``.  For a nested day, the side
            whose scalar fields won; for a rejected record, the side it
            was read from.
    """

    collection: str
    record_id: str | None = None
    action: MergeAction
    local_updated_at: int | None = None
    remote_updated_at: int | None = None
    detail: str | None = None
    side: str | None = None

    model_config = {"frozen": True}

    @property
    def took_remote(self) -> bool:
        """True when the merged record (or a day's fields) came from remote."""
        if self.action == MergeAction.NESTED:
            return self.side == "remote"
        return self.action in (
            MergeAction.REMOTE_ONLY,
            MergeAction.REMOTE_NEWER,
        )


class MergeReport(BaseModel):
    """Aggregate report for one ``merge`` call.

    Attributes:
        started_at: ISO 8601 timestamp when the merge started.
        completed_at: ISO 8601 timestamp when the merge finished.
        outcomes: One entry per identifier in every collection, events
            included, plus one per record rejected on either side.
        trip_name_from: ``"local"`` or ``"remote"``.
        local_last_updated: ``lastUpdated`` of the local snapshot.
        remote_last_updated: ``lastUpdated`` of the remote snapshot.
        last_updated: ``lastUpdated`` of the merged dataset.
    """

    started_at: str
    completed_at: str | None = None
    outcomes: list[RecordOutcome] = []
    trip_name_from: str = "local"
    local_last_updated: int = 0
    remote_last_updated: int = 0
    last_updated: int = 0

    model_config = {"frozen": True}

    def _with_action(self, *actions: MergeAction) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.action in actions]

    @property
    def added_from_remote(self) -> list[RecordOutcome]:
        """Outcomes where action is REMOTE_ONLY."""
        return self._with_action(MergeAction.REMOTE_ONLY)

    @property
    def updated_from_remote(self) -> list[RecordOutcome]:
        """Outcomes where action is REMOTE_NEWER."""
        return self._with_action(MergeAction.REMOTE_NEWER)

    @property
    def kept_local(self) -> list[RecordOutcome]:
        """Outcomes where the local record was kept over a remote one."""
        return self._with_action(MergeAction.LOCAL_NEWER, MergeAction.TIE)

    @property
    def local_only(self) -> list[RecordOutcome]:
        """Outcomes where action is LOCAL_ONLY."""
        return self._with_action(MergeAction.LOCAL_ONLY)

    @property
    def nested(self) -> list[RecordOutcome]:
        """Days whose events were merged."""
        return self._with_action(MergeAction.NESTED)

    @property
    def rejected(self) -> list[RecordOutcome]:
        """Records skipped as malformed, from either side."""
        return self._with_action(MergeAction.REJECTED)

    @property
    def local_rejected(self) -> list[RecordOutcome]:
        """Local records that are missing from the merged dataset."""
        return [o for o in self.rejected if o.side == "local"]

    @property
    def changed(self) -> bool:
        """True if anything from the remote side made it into the result."""
        return any(o.took_remote for o in self.outcomes) or (
            self.trip_name_from == "remote"
        )

    def summary(self) -> str:
        """Format a short multi-line summary with counts by action."""
        lines = [
            "Merge report",
            f"  Added from remote:   {len(self.added_from_remote)}",
            f"  Updated from remote: {len(self.updated_from_remote)}",
            f"  Kept local:          {len(self.kept_local)}",
            f"  Local only:          {len(self.local_only)}",
            f"  Days merged:         {len(self.nested)}",
            f"  Rejected:            {len(self.rejected)}",
            f"  Total:               {len(self.outcomes)}",
        ]
        return "\n".join(lines)


class MergeResult(BaseModel):
    """Merged dataset plus the report describing how it was built."""

    dataset: Dataset
    report: MergeReport

    model_config = {"frozen": True}
