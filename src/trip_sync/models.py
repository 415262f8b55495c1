"""Pydantic record schemas for the trip dataset.

Defines every record type persisted by the trip app and the ``Dataset``
root aggregate that holds them:

- ``Event``: One item on a day's schedule (owned by exactly one ``Day``).
- ``Day``: An itinerary day with its ordered events.
- ``Expense``, ``Todo``, ``Spot``, ``GasStation``: Flat collections.
- ``Settings``: Device-specific scalars (never merged).
- ``Dataset``: The full snapshot handed to the merge engine.

Key design choices:

* **camelCase on the wire** -- JSON names match what the device app
  writes (``updatedAt``, ``isShared``, ``gasStations`` ...).  Python code
  uses snake_case attributes; both spellings are accepted on input.
* **Frozen** -- snapshots are immutable, so merging never mutates either
  input.
* **Unknown fields survive** -- ``extra="allow"`` keeps fields this
  version does not model, so picking a whole record never drops data.
* **Strict timestamps** -- ``updated_at`` must be a real integer; a
  string or float timestamp makes the record malformed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, StrictInt
from pydantic.alias_generators import to_camel

_RECORD_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
    "extra": "allow",
}


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EventType(str, Enum):
    """Category of an itinerary event."""

    SIGHTSEEING = "sightseeing"
    FOOD = "food"
    TRANSPORT = "transport"
    EVENT = "event"
    ACCOMMODATION = "accommodation"
    SHOPPING = "shopping"


class Currency(str, Enum):
    USD = "USD"
    TWD = "TWD"


class PaymentMethod(str, Enum):
    """Cash or one of the two travellers' cards."""

    CASH = "cash"
    JING_CARD = "jing_card"
    XIANG_CARD = "xiang_card"


class ExpenseType(str, Enum):
    DAILY = "daily"
    MAJOR = "major"


class SpotCategory(str, Enum):
    FOOD = "food"
    SIGHTSEEING = "sightseeing"
    SHOPPING = "shopping"


class TodoCategory(str, Enum):
    GENERAL = "general"
    PACKING = "packing"


# ---------------------------------------------------------------------------
# Itinerary
# ---------------------------------------------------------------------------


class FlightInfo(BaseModel):
    """Flight details attached to a transport event."""

    flight_number: str
    airline: str | None = None
    terminal: str | None = None
    gate: str | None = None
    arrival_time: str | None = None
    departure_time: str | None = None

    model_config = _RECORD_CONFIG


class Event(BaseModel):
    """A single scheduled item within a day.

    Attributes:
        id: Stable identifier assigned at creation.
        time: Time of day, ``HH:MM``.
        title: Display title.
        category: Event category (``type`` on the wire).
        location: Free-text address used for navigation.
        note: Free-text note.
        order: Display position within the day.  Values need not be
            contiguous; only their relative order matters.
        updated_at: Last-modified time in epoch milliseconds.
    """

    id: str = Field(min_length=1)
    time: str = ""
    title: str
    category: EventType = Field(alias="type")
    location: str = ""
    note: str = ""
    order: StrictInt = 0
    updated_at: StrictInt = Field(ge=0)
    url: str | None = None
    booking_info: str | None = None
    cost: float | None = None
    currency: Currency | None = None
    payment_method: PaymentMethod | None = None
    flight_info: FlightInfo | None = None

    model_config = _RECORD_CONFIG


class Day(BaseModel):
    """An itinerary day.  Owns its ``events`` exclusively."""

    id: str = Field(min_length=1)
    label: str = Field(alias="date")
    calendar_date: str | None = None
    theme: str = ""
    main_location: str = ""
    lat: float = 0.0
    lon: float = 0.0
    events: list[Event] = Field(default_factory=list)
    updated_at: StrictInt = Field(ge=0)

    model_config = _RECORD_CONFIG


# ---------------------------------------------------------------------------
# Flat collections
# ---------------------------------------------------------------------------


class Expense(BaseModel):
    id: str = Field(min_length=1)
    item: str
    amount: float
    currency: Currency
    payment_method: PaymentMethod
    is_shared: bool = False
    date: str = ""
    category: ExpenseType = Field(default=ExpenseType.DAILY, alias="type")
    updated_at: StrictInt = Field(ge=0)

    model_config = _RECORD_CONFIG


class Spot(BaseModel):
    """A saved place that is not (yet) on the itinerary."""

    id: str = Field(min_length=1)
    name: str
    category: SpotCategory
    city: str = ""
    location: str = ""
    note: str = ""
    updated_at: StrictInt = Field(ge=0)

    model_config = _RECORD_CONFIG


class GasStation(BaseModel):
    id: str = Field(min_length=1)
    name: str
    address: str = ""
    description: str = ""
    is_costco: bool = False
    updated_at: StrictInt = Field(ge=0)

    model_config = _RECORD_CONFIG


class Todo(BaseModel):
    """A to-do or packing item.

    ``days_before`` is how many days before departure the item is due.
    """

    id: str = Field(min_length=1)
    text: str
    done: bool = False
    category: TodoCategory = TodoCategory.GENERAL
    days_before: StrictInt | None = None
    assigned_date: str | None = None
    updated_at: StrictInt = Field(ge=0)

    model_config = _RECORD_CONFIG


class Settings(BaseModel):
    """Device-local settings.  Never merged."""

    exchange_rate: float = 32.5
    google_maps_key: str = ""

    model_config = _RECORD_CONFIG


# ---------------------------------------------------------------------------
# Root aggregate
# ---------------------------------------------------------------------------

#: Collection attribute name -> record model.  ``itinerary`` is listed
#: first because it is the only nested collection.
COLLECTIONS: dict[str, type[BaseModel]] = {
    "itinerary": Day,
    "expenses": Expense,
    "todos": Todo,
    "backup_spots": Spot,
    "gas_stations": GasStation,
}


class Dataset(BaseModel):
    """Complete, immutable snapshot of one traveller's trip data.

    Attributes:
        trip_name: Display name of the trip (``tripName``).
        itinerary: Ordered days.
        expenses: Expense ledger.
        todos: To-do and packing items.
        backup_spots: Saved spots (``backupSpots``).
        gas_stations: Fuel stations (``gasStations``).
        settings: Device-specific settings.
        last_updated: Dataset-level last-modified time (``lastUpdated``).
    """

    trip_name: str = ""
    itinerary: list[Day] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    todos: list[Todo] = Field(default_factory=list)
    backup_spots: list[Spot] = Field(default_factory=list)
    gas_stations: list[GasStation] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)
    last_updated: StrictInt = Field(default=0, ge=0)

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "alias_generator": to_camel,
    }

    def collection(self, name: str) -> list:
        """Return the record list for collection attribute *name*.

        Raises:
            KeyError: If *name* is not a known collection.
        """
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: '{name}'")
        return getattr(self, name)

    def record_count(self) -> int:
        """Number of top-level records across all collections."""
        return sum(len(self.collection(name)) for name in COLLECTIONS)

    def max_record_timestamp(self) -> int:
        """Newest ``updated_at`` of any record or event, or ``0``."""
        stamps = [0]
        for name in COLLECTIONS:
            stamps.extend(r.updated_at for r in self.collection(name))
        for day in self.itinerary:
            stamps.extend(e.updated_at for e in day.events)
        return max(stamps)

    def to_json_dict(self) -> dict:
        """Return the camelCase, JSON-safe form the device app stores.

        Optional fields that are unset are left out rather than written as
        ``null``.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
