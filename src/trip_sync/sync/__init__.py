"""Two-copy merge engine for trip datasets.

Public API for reconciling two independently edited copies of the same
trip (for example the two travellers' phones).

Architecture
------------
Merging is **last-write-wins per record**.  Every record carries an
``id`` and an ``updated_at`` timestamp; for an id present on both sides
the whole record with the newer timestamp is kept (ties keep local), and
ids present on one side only are copied across.  There are no
tombstones: a record deleted on one side comes back if the other side
still has it.

Modules:

- ``merger``    -- ``merge_records``: generic record merge by id.
- ``itinerary`` -- ``merge_itinerary``: days by id, events inside shared
  days, re-sorted by ``order``.
- ``engine``    -- ``merge`` / ``merge_with_report``: whole-dataset merge.
- ``models``    -- ``MergeAction``, ``RecordOutcome``, ``MergeReport``,
  ``MergeResult``.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from trip_sync.store import TripStore
    from trip_sync.transfer import decode_sync_code
    from trip_sync.sync import merge_with_report, format_merge_report

    store = TripStore(Path("~/.local/share/trip_sync").expanduser())
    remote = decode_sync_code(code_from_partner)

    result = merge_with_report(store.load_snapshot(), remote)
    print(format_merge_report(result.report))
    store.ensure_no_local_loss(result)
    store.save(result.dataset)
"""

from .engine import merge, merge_with_report
from .itinerary import merge_day, merge_itinerary
from .merger import merge_records, pick_newer
from .models import MergeAction, MergeReport, MergeResult, RecordOutcome
from .reporter import format_merge_report, report_to_json

__all__ = [
    "MergeAction",
    "MergeReport",
    "MergeResult",
    "RecordOutcome",
    "format_merge_report",
    "merge",
    "merge_day",
    "merge_itinerary",
    "merge_records",
    "merge_with_report",
    "pick_newer",
    "report_to_json",
]
