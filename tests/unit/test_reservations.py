"""Tests for the in-memory reservation table."""
from clinic_booking.reservations import ReservationTable, SlotKey

KEY = SlotKey("2026-10-21", "Ortho", "10:30")


class TestTryReserve:

    def test_free_key_is_reserved(self, reservations):
        assert reservations.try_reserve(KEY, "alice") is True
        assert reservations.get(KEY).holder == "alice"

    def test_same_holder_is_idempotent_and_refreshes_timestamp(self, reservations, clock):
        assert reservations.try_reserve(KEY, "alice")
        first = reservations.get(KEY).timestamp

        clock.advance(60)
        assert reservations.try_reserve(KEY, "alice")
        assert reservations.get(KEY).timestamp == first + 60

    def test_other_holder_rejected_while_live(self, reservations):
        reservations.try_reserve(KEY, "alice")

        assert reservations.try_reserve(KEY, "bob") is False
        assert reservations.get(KEY).holder == "alice"
        assert reservations.is_held_by_other(KEY, "bob")
        assert not reservations.is_held_by_other(KEY, "alice")

    def test_expired_reservation_can_be_taken_over(self, reservations, clock):
        reservations.try_reserve(KEY, "alice")
        clock.advance(301)

        assert reservations.try_reserve(KEY, "bob") is True
        assert reservations.get(KEY).holder == "bob"

    def test_reservation_at_exact_ttl_is_still_live(self, reservations, clock):
        reservations.try_reserve(KEY, "alice")
        clock.advance(300)

        assert reservations.try_reserve(KEY, "bob") is False


class TestRelease:

    def test_release_round_trip(self, reservations):
        reservations.try_reserve(KEY, "alice")
        reservations.release(KEY)

        assert reservations.get(KEY) is None
        assert not reservations.is_held_by_other(KEY, "bob")
        assert reservations.held_slots(KEY.date, KEY.department) == []
        assert reservations.try_reserve(KEY, "bob")

    def test_release_missing_key_is_noop(self, reservations):
        reservations.release(KEY)
        assert len(reservations) == 0


class TestHeldSlots:

    def test_filters_by_date_and_department(self, reservations):
        reservations.try_reserve(KEY, "alice")
        reservations.try_reserve(SlotKey("2026-10-21", "Ortho", "11:15"), "bob")
        reservations.try_reserve(SlotKey("2026-10-21", "ENT", "12:00"), "carol")
        reservations.try_reserve(SlotKey("2026-10-22", "Ortho", "13:00"), "dave")

        assert sorted(reservations.held_slots("2026-10-21", "Ortho")) == ["10:30", "11:15"]
        assert reservations.held_slots("2026-10-21", "ENT") == ["12:00"]

    def test_expired_entries_not_reported(self, reservations, clock):
        reservations.try_reserve(KEY, "alice")
        clock.advance(301)

        assert reservations.held_slots(KEY.date, KEY.department) == []
        assert reservations.get(KEY) is None


def test_cleanup_expired_evicts_only_stale_entries(clock):
    table = ReservationTable(ttl=300, clock=clock)
    table.try_reserve(KEY, "alice")
    clock.advance(200)
    fresh = SlotKey("2026-10-21", "ENT", "10:45")
    table.try_reserve(fresh, "bob")
    clock.advance(150)

    assert table.cleanup_expired() == 1
    assert len(table) == 1
    assert table.get(fresh).holder == "bob"
