"""Tests for sync/itinerary.py: nested day/event merge."""

from __future__ import annotations

from trip_sync.models import Day, Event
from trip_sync.sync.itinerary import merge_day, merge_itinerary, sort_events
from trip_sync.sync.models import MergeAction

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _event(event_id: str, order: int, ts: int, title: str = "") -> Event:
    return Event(
        id=event_id,
        title=title or event_id,
        category="sightseeing",
        order=order,
        updated_at=ts,
    )


def _day(day_id: str, ts: int, events=(), **fields) -> Day:
    fields.setdefault("label", day_id)
    fields.setdefault("theme", "")
    return Day(id=day_id, updated_at=ts, events=list(events), **fields)


def _event_ids(day: Day) -> list[str]:
    return [e.id for e in day.events]


# ---------------------------------------------------------------------------
# sort_events
# ---------------------------------------------------------------------------


class TestSortEvents:
    def test_sorted_by_order(self):
        events = [_event("c", 2, 1), _event("a", 0, 1), _event("b", 1, 1)]
        assert [e.id for e in sort_events(events)] == ["a", "b", "c"]

    def test_equal_order_is_stable(self):
        events = [_event("x", 1, 1), _event("y", 0, 1), _event("z", 1, 1)]
        assert [e.id for e in sort_events(events)] == ["y", "x", "z"]


# ---------------------------------------------------------------------------
# merge_day
# ---------------------------------------------------------------------------


class TestMergeDay:
    """Tests for merge_day()."""

    def test_both_sides_add_different_events(self):
        """Local adds e2 @150, remote adds e3 @160; all three survive."""
        e1 = _event("e1", 0, 100)
        local = _day("d1", 150, [e1, _event("e2", 1, 150)])
        remote = _day("d1", 160, [e1, _event("e3", 2, 160)])

        merged, _ = merge_day(local, remote)

        assert _event_ids(merged) == ["e1", "e2", "e3"]
        assert merged.updated_at == 160

    def test_scalar_fields_from_newer_day(self):
        local = _day("d1", 100, theme="Beach", main_location="Santa Monica")
        remote = _day("d1", 200, theme="Desert", main_location="Joshua Tree")

        merged, outcomes = merge_day(local, remote)

        assert merged.theme == "Desert"
        assert merged.main_location == "Joshua Tree"
        assert outcomes[0].detail == "day fields from remote"
        assert outcomes[0].side == "remote"
        assert outcomes[0].took_remote

    def test_local_scalars_win_when_local_newer(self):
        local = _day("d1", 300, theme="Beach")
        remote = _day("d1", 200, theme="Desert", events=[_event("e9", 0, 400)])

        merged, outcomes = merge_day(local, remote)

        assert merged.theme == "Beach"
        # newer remote event still lands in the older remote day's place
        assert _event_ids(merged) == ["e9"]
        assert merged.updated_at == 300
        assert outcomes[0].detail == "day fields from local"
        assert outcomes[0].side == "local"
        assert not outcomes[0].took_remote

    def test_theme_only_edit_from_remote(self):
        """No event changes; only the remote day's theme is newer."""
        e1 = _event("e1", 0, 100)
        local = _day("d1", 100, [e1], theme="Arrival")
        remote = _day("d1", 200, [e1], theme="Remote theme")

        merged, outcomes = merge_day(local, remote)

        assert merged.theme == "Remote theme"
        assert outcomes[0].took_remote
        assert not any(o.took_remote for o in outcomes[1:])

    def test_tie_keeps_local_scalars(self):
        merged, _ = merge_day(
            _day("d1", 5, theme="Mine"), _day("d1", 5, theme="Theirs")
        )
        assert merged.theme == "Mine"

    def test_interleaved_events_resorted(self):
        local = _day("d1", 1, [_event("a", 0, 1), _event("c", 2, 1)])
        remote = _day("d1", 1, [_event("b", 1, 1), _event("d", 3, 1)])

        merged, _ = merge_day(local, remote)

        assert _event_ids(merged) == ["a", "b", "c", "d"]

    def test_newer_event_version_wins(self):
        local = _day("d1", 1, [_event("e1", 0, 10, title="Old title")])
        remote = _day("d1", 1, [_event("e1", 5, 20, title="New title")])

        merged, outcomes = merge_day(local, remote)

        assert merged.events[0].title == "New title"
        assert merged.events[0].order == 5
        event_outcome = outcomes[1]
        assert event_outcome.collection == "itinerary[d1].events"
        assert event_outcome.action == MergeAction.REMOTE_NEWER

    def test_outcomes_shape(self):
        local = _day("d1", 1, [_event("e1", 0, 1)])
        remote = _day("d1", 2, [_event("e2", 1, 2)])

        _, outcomes = merge_day(local, remote)

        assert outcomes[0].action == MergeAction.NESTED
        assert outcomes[0].record_id == "d1"
        assert outcomes[0].local_updated_at == 1
        assert outcomes[0].remote_updated_at == 2
        assert [o.action for o in outcomes[1:]] == [
            MergeAction.LOCAL_ONLY,
            MergeAction.REMOTE_ONLY,
        ]

    def test_inputs_not_mutated(self):
        local = _day("d1", 1, [_event("e1", 0, 1)])
        remote = _day("d1", 2, [_event("e2", 1, 2)])

        merge_day(local, remote)

        assert _event_ids(local) == ["e1"]
        assert _event_ids(remote) == ["e2"]
        assert remote.updated_at == 2


# ---------------------------------------------------------------------------
# merge_itinerary
# ---------------------------------------------------------------------------


class TestMergeItinerary:
    def test_day_order_local_then_remote_only(self):
        local = [_day("d2", 1), _day("d1", 1)]
        remote = [_day("d3", 1), _day("d1", 2)]

        days, _ = merge_itinerary(local, remote)

        assert [d.id for d in days] == ["d2", "d1", "d3"]

    def test_only_shared_days_are_nested(self):
        local = [_day("d1", 1), _day("d2", 1)]
        remote = [_day("d2", 1), _day("d3", 1)]

        _, outcomes = merge_itinerary(local, remote)

        day_actions = {
            o.record_id: o.action
            for o in outcomes
            if o.collection == "itinerary"
        }
        assert day_actions == {
            "d1": MergeAction.LOCAL_ONLY,
            "d2": MergeAction.NESTED,
            "d3": MergeAction.REMOTE_ONLY,
        }

    def test_remote_only_day_kept_whole(self):
        remote_day = _day("d9", 5, [_event("e1", 1, 5), _event("e0", 0, 5)])
        days, _ = merge_itinerary([], [remote_day])
        assert days == [remote_day]

    def test_empty(self):
        assert merge_itinerary([], []) == ([], [])
