"""On-disk persistence for the trip dataset.

Stores the whole dataset as one JSON document named after a fixed
storage key (``us_trip_v4_react.json`` by default), in the same camelCase
shape the device app keeps in local storage.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so a failed write never leaves a half-written dataset.
* **Starter data** -- a missing file loads the built-in starter trip,
  mirroring what the app shows on first launch.
* **Merge commits** -- ``commit_merge()`` computes the merged dataset
  fully in memory and only then overwrites the stored copy.  It refuses
  to save when stored records could not be read, since the merged
  dataset would not contain them.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from trip_sync.models import Dataset
from trip_sync.snapshot import LoadedSnapshot, SnapshotError, load_snapshot
from trip_sync.sync.engine import DatasetLike, merge_with_report
from trip_sync.sync.models import MergeResult

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "us_trip_v4_react"


class StoreError(RuntimeError):
    """Raised when the stored dataset cannot be read or safely rewritten."""


# ---------------------------------------------------------------------------
# Starter data
# ---------------------------------------------------------------------------

STARTER_DATA: dict[str, Any] = {
    "tripName": "US West Road Trip",
    "itinerary": [
        {
            "id": "day-1",
            "date": "Day 1",
            "calendarDate": "2026-03-27",
            "theme": "Trip begins",
            "mainLocation": "Los Angeles LAX",
            "lat": 33.9416,
            "lon": -118.4085,
            "updatedAt": 0,
            "events": [
                {
                    "id": "sample-1",
                    "time": "14:00",
                    "title": "Arrive at LAX",
                    "type": "transport",
                    "location": "1 World Way, Los Angeles, CA 90045",
                    "note": "Collect bags, then head to the Car Rental Center.",
                    "order": 0,
                    "updatedAt": 0,
                    "flightInfo": {
                        "flightNumber": "BR12",
                        "airline": "EVA Air",
                        "terminal": "B",
                    },
                },
                {
                    "id": "sample-2",
                    "time": "16:00",
                    "title": "Pick up rental car",
                    "type": "transport",
                    "location": "Hertz Car Rental - LAX",
                    "note": "Check insurance, damage and a full tank.",
                    "order": 1,
                    "updatedAt": 0,
                },
            ],
        }
    ],
    "expenses": [],
    "todos": [
        {"id": "t1", "text": "Apply for an international driving permit",
         "done": False, "category": "general", "daysBefore": 30, "updatedAt": 0},
        {"id": "t2", "text": "Print hotel and car rental vouchers",
         "done": False, "category": "general", "daysBefore": 7, "updatedAt": 0},
        {"id": "t3", "text": "Spare US plug adapter",
         "done": False, "category": "packing", "daysBefore": 3, "updatedAt": 0},
        {"id": "t4", "text": "Sunscreen and sunglasses",
         "done": False, "category": "packing", "daysBefore": 1, "updatedAt": 0},
        {"id": "t5", "text": "Lotion and lip balm",
         "done": False, "category": "packing", "daysBefore": 1, "updatedAt": 0},
    ],
    "backupSpots": [],
    "gasStations": [
        {"id": "gas-1", "name": "Costco Wholesale LAX",
         "address": "14501 Hindry Ave, Hawthorne, CA 90250",
         "description": "Near LAX; fill up before returning the car.",
         "isCostco": True, "updatedAt": 0},
        {"id": "gas-2", "name": "Costco Wholesale SF",
         "address": "450 10th St, San Francisco, CA 94103",
         "description": "A rare Costco in downtown San Francisco.",
         "isCostco": True, "updatedAt": 0},
        {"id": "gas-3", "name": "Costco Wholesale Vegas",
         "address": "6555 N Decatur Blvd, Las Vegas, NV 89131",
         "description": "Last stop before the national parks.",
         "isCostco": True, "updatedAt": 0},
        {"id": "gas-4", "name": "Chevron Self Service",
         "address": "General US Location",
         "description": "Best non-Costco option; reliable but pricier.",
         "isCostco": False, "updatedAt": 0},
    ],
    "settings": {"exchangeRate": 32.5, "googleMapsKey": ""},
    "lastUpdated": 0,
}


def starter_dataset() -> Dataset:
    """Return the dataset a fresh install starts with."""
    return load_snapshot(STARTER_DATA, source="starter").dataset


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TripStore:
    """Load and save the trip dataset under a fixed storage key.

    Args:
        storage_dir: Directory holding the dataset file.
        key: Storage key; the file is ``<key>.json``.
    """

    def __init__(
        self, storage_dir: Path, key: str = DEFAULT_STORAGE_KEY
    ) -> None:
        self._storage_dir = storage_dir
        self._key = key

    @property
    def path(self) -> Path:
        """Path of the dataset file."""
        return self._storage_dir / f"{self._key}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def load_snapshot(self) -> LoadedSnapshot:
        """Load the stored dataset together with any records it had to skip.

        Records written before the app stamped ``updatedAt`` load with a
        timestamp of 0.  Records that are still malformed are listed in
        ``rejected``.

        Raises:
            StoreError: If the file is not valid JSON or not a dataset.
        """
        if not self.path.exists():
            logger.info("No stored dataset at %s; using starter data", self.path)
            return LoadedSnapshot(dataset=starter_dataset())
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
            return load_snapshot(raw, source=str(self.path), lenient=True)
        except (OSError, json.JSONDecodeError, SnapshotError) as exc:
            raise StoreError(
                f"Cannot read stored dataset {self.path}: {exc}"
            ) from exc

    def load(self) -> Dataset:
        """Return the stored ``Dataset``, or the starter dataset when nothing
        has been saved yet."""
        return self.load_snapshot().dataset

    def save(self, dataset: Dataset) -> None:
        """Persist *dataset* atomically.

        Writes to a temporary file in the storage directory, then replaces
        the target.  Creates the storage directory if needed.
        """
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._storage_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(
                    dataset.to_json_dict(), fh, indent=2, ensure_ascii=False
                )
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Saved dataset to %s", self.path)

    def ensure_no_local_loss(self, result: MergeResult) -> None:
        """Raise ``StoreError`` if *result* lacks stored records that could
        not be read, since saving it would delete them from disk."""
        lost = result.report.local_rejected
        if lost:
            ids = ", ".join(f"{o.collection}/{o.record_id}" for o in lost)
            raise StoreError(
                f"{self.path} has {len(lost)} unreadable record(s) ({ids}); "
                "fix or remove them before merging"
            )

    def commit_merge(
        self, remote: DatasetLike, dry_run: bool = False
    ) -> MergeResult:
        """Merge *remote* into the stored dataset and persist the result.

        The merged dataset is computed completely before anything is
        written.  With *dry_run* nothing is written at all.  Records the
        store could not read show up as rejected in the report.

        Raises:
            StoreError: If saving would drop stored records that could not
                be read (see ``ensure_no_local_loss``).
        """
        result = merge_with_report(self.load_snapshot(), remote)
        if dry_run:
            return result
        self.ensure_no_local_loss(result)
        self.save(result.dataset)
        logger.info(
            "Committed merge to %s (%d records)",
            self.path,
            result.dataset.record_count(),
        )
        return result
