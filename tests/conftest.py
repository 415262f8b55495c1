"""Shared pytest fixtures for trip-sync tests."""

import copy

import pytest

from trip_sync.snapshot import load_snapshot


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep real config files and TRIP_SYNC_* env vars out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "TRIP_SYNC_CONFIG",
        "TRIP_SYNC_STORAGE_DIR",
        "TRIP_SYNC_STORAGE_KEY",
        "TRIP_SYNC_EXPORT_DIR",
        "TRIP_SYNC_CONFIRM",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def trip_dict():
    """Factory fixture for a small JSON-shaped dataset (camelCase keys).

    Every call returns a fresh deep copy, so tests can edit it freely.
    """

    base = {
        "tripName": "West Coast",
        "itinerary": [
            {
                "id": "d1",
                "date": "Day 1",
                "calendarDate": "2026-03-27",
                "theme": "Arrival",
                "mainLocation": "LAX",
                "lat": 33.94,
                "lon": -118.41,
                "updatedAt": 100,
                "events": [
                    {
                        "id": "ev1",
                        "time": "14:00",
                        "title": "Land at LAX",
                        "type": "transport",
                        "location": "1 World Way",
                        "note": "",
                        "order": 0,
                        "updatedAt": 100,
                    }
                ],
            }
        ],
        "expenses": [
            {
                "id": "e1",
                "item": "Dinner",
                "amount": 50,
                "currency": "USD",
                "paymentMethod": "cash",
                "isShared": True,
                "date": "2026-03-27",
                "type": "daily",
                "updatedAt": 100,
            }
        ],
        "todos": [
            {"id": "t1", "text": "IDP", "done": False, "category": "general",
             "daysBefore": 30, "updatedAt": 100},
        ],
        "backupSpots": [
            {"id": "s1", "name": "In-N-Out", "category": "food",
             "city": "Los Angeles", "location": "", "note": "",
             "updatedAt": 100},
        ],
        "gasStations": [
            {"id": "g1", "name": "Costco LAX", "address": "Hawthorne",
             "description": "", "isCostco": True, "updatedAt": 100},
        ],
        "settings": {"exchangeRate": 32.5, "googleMapsKey": ""},
        "lastUpdated": 100,
    }

    def _make(**overrides):
        data = copy.deepcopy(base)
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def trip_dataset(trip_dict):
    """Factory fixture returning a validated ``Dataset``."""

    def _make(**overrides):
        return load_snapshot(trip_dict(**overrides)).dataset

    return _make
