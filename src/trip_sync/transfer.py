"""Moving a dataset between the two travellers' copies.

Two transfer paths produce the *remote* snapshot for a merge:

- **Sync code** -- a text blob pasted from chat.  It is the base64 of the
  URI-component percent-encoding of the dataset JSON, the same bytes the
  device app produces with ``btoa(encodeURIComponent(JSON.stringify(d)))``.
- **Backup file** -- the dataset JSON written to
  ``my_trip_backup_YYYY-MM-DD.json``.

Both paths end in ``load_snapshot`` so they yield exactly the same
``Dataset`` shape.  Anything that cannot be decoded, or that decodes to
something which is not a dataset, raises ``TransferError`` and the merge
is never attempted.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from datetime import date
from pathlib import Path
from urllib.parse import quote, unquote

from trip_sync.file_handler import (
    read_file_with_encoding,
    validate_file_path,
    write_file,
)
from trip_sync.models import Dataset
from trip_sync.snapshot import LoadedSnapshot, SnapshotError, load_snapshot

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves untouched besides letters and digits.
_URI_COMPONENT_SAFE = "-_.!~*'()"

BACKUP_PREFIX = "my_trip_backup"


class TransferError(ValueError):
    """Raised when a sync code or backup file is not a valid dataset."""


# ---------------------------------------------------------------------------
# Sync codes
# ---------------------------------------------------------------------------


def encode_sync_code(dataset: Dataset) -> str:
    """Encode *dataset* as a pasteable sync code."""
    text = json.dumps(
        dataset.to_json_dict(), ensure_ascii=False, separators=(",", ":")
    )
    escaped = quote(text, safe=_URI_COMPONENT_SAFE)
    return base64.b64encode(escaped.encode("ascii")).decode("ascii")


def decode_sync_code(code: str) -> LoadedSnapshot:
    """Decode a sync code back into a dataset snapshot.

    Whitespace anywhere in *code* is ignored, since chat apps like to wrap
    long strings.

    Raises:
        TransferError: If the code is empty, truncated or not a dataset.
    """
    compact = "".join(code.split())
    if not compact:
        raise TransferError("Sync code is empty")
    try:
        escaped = base64.b64decode(compact, validate=True).decode("ascii")
        text = unquote(escaped, errors="strict")
        raw = json.loads(text)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TransferError(
            "Invalid sync code; make sure it was copied completely"
        ) from exc
    return _load(raw, "sync code")


# ---------------------------------------------------------------------------
# Backup files
# ---------------------------------------------------------------------------


def export_filename(day: date | None = None) -> str:
    """Return the backup file name for *day* (default: today)."""
    day = day or date.today()
    return f"{BACKUP_PREFIX}_{day.isoformat()}.json"


def write_backup(
    dataset: Dataset, directory: Path, day: date | None = None
) -> Path:
    """Write *dataset* as a pretty-printed backup file into *directory*.

    Returns:
        Path of the written file.
    """
    path = directory / export_filename(day)
    text = json.dumps(dataset.to_json_dict(), indent=2, ensure_ascii=False)
    count = write_file(path, text)
    logger.info("Wrote backup %s (%d bytes)", path, count)
    return path


def read_backup(path_str: str, lenient: bool = False) -> LoadedSnapshot:
    """Read a backup file into a dataset snapshot.

    Pass *lenient* when the file is the caller's own copy (see
    ``load_snapshot``).

    Raises:
        TransferError: If the file is missing, not JSON or not a dataset.
    """
    try:
        path = validate_file_path(path_str)
        content, encoding = read_file_with_encoding(path)
        raw = json.loads(content)
    except (OSError, ValueError) as exc:
        raise TransferError(f"Invalid backup file {path_str}: {exc}") from exc
    logger.debug("Read backup %s (%s)", path, encoding)
    return _load(raw, path.name, lenient)


def _load(raw: object, source: str, lenient: bool = False) -> LoadedSnapshot:
    try:
        return load_snapshot(raw, source=source, lenient=lenient)
    except SnapshotError as exc:
        raise TransferError(f"Not a trip dataset: {exc}") from exc
