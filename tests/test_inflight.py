"""In-flight toggle guard and the optimistic mutation state machine."""

import threading

import pytest

from src.services.errors import InvalidTransitionError, MutationInFlightError
from src.services.inflight import InFlightGuard, MutationState, PendingMutation, toggle_key

PREVIOUS = {"completed": False, "completedAt": None}
OPTIMISTIC = {"completed": True, "completedAt": None}


def mutation():
    return PendingMutation(key=("u", "2024-01-01", "water-intake"), previous=PREVIOUS, optimistic=OPTIMISTIC)


class TestPendingMutation:
    def test_pending_shows_optimistic_value(self):
        m = mutation()
        assert m.state == MutationState.pending
        assert m.current == OPTIMISTIC

    def test_confirm_shows_server_result(self):
        m = mutation()
        result = {"completed": True, "completedAt": "2024-01-01T10:00:00+00:00"}

        m.confirm(result)

        assert m.state == MutationState.confirmed
        assert m.current == result

    def test_rollback_restores_previous(self):
        m = mutation()

        m.roll_back("db down")

        assert m.state == MutationState.rolled_back
        assert m.current == PREVIOUS
        assert m.error == "db down"

    @pytest.mark.parametrize("first", ["confirm", "roll_back"])
    def test_terminal_states_are_final(self, first):
        m = mutation()
        getattr(m, first)(*(["boom"] if first == "roll_back" else []))

        with pytest.raises(InvalidTransitionError):
            m.confirm()
        with pytest.raises(InvalidTransitionError):
            m.roll_back("again")


class TestInFlightGuard:
    def test_second_acquire_rejected(self):
        guard = InFlightGuard()
        key = toggle_key("u", "2024-01-01", "water-intake")

        guard.acquire(key)

        assert guard.is_in_flight(key)
        with pytest.raises(MutationInFlightError):
            guard.acquire(key)
        guard.release(key)
        assert not guard.is_in_flight(key)

    def test_other_tasks_not_blocked(self):
        guard = InFlightGuard()
        guard.acquire(toggle_key("u", "2024-01-01", "water-intake"))
        guard.acquire(toggle_key("u", "2024-01-01", "follow-diet"))
        guard.acquire(toggle_key("u", "2024-01-02", "water-intake"))

    def test_hold_releases_on_error(self):
        guard = InFlightGuard()
        key = toggle_key("u", "2024-01-01", "water-intake")

        with pytest.raises(RuntimeError):
            with guard.hold(key):
                raise RuntimeError("write failed")

        assert not guard.is_in_flight(key)

    def test_only_one_thread_wins(self):
        guard = InFlightGuard()
        key = toggle_key("u", "2024-01-01", "water-intake")
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            try:
                guard.acquire(key)
                results.append("ok")
            except MutationInFlightError:
                results.append("busy")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("busy") == 7
