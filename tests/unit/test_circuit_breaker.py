"""Tests for circuit breaker pattern."""
import pytest

from clinic_booking.circuit_breaker import CircuitBreaker, CircuitBreakerOpen


class ManualClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def failing_call():
    raise RuntimeError("API failed")


class TestCircuitBreaker:
    """Test circuit breaker behavior."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker("whatsapp", failure_threshold=3, reset_timeout=60, clock=clock)

    def open_circuit(self, breaker):
        for _ in range(3):
            with pytest.raises(RuntimeError):
                breaker.call(failing_call)

    def test_allows_requests_when_closed(self, breaker):
        assert breaker.call(lambda: "success") == "success"
        assert breaker.state == "closed"

    def test_opens_after_threshold_failures(self, breaker):
        self.open_circuit(breaker)
        assert breaker.state == "open"

        # Fails fast without calling the function
        calls = []
        with pytest.raises(CircuitBreakerOpen) as exc_info:
            breaker.call(lambda: calls.append(1))
        assert calls == []
        assert exc_info.value.retry_after == 60

    def test_success_resets_failure_count(self, breaker):
        for _ in range(2):
            with pytest.raises(RuntimeError):
                breaker.call(failing_call)
        breaker.call(lambda: None)

        with pytest.raises(RuntimeError):
            breaker.call(failing_call)
        assert breaker.state == "closed"

    def test_failed_trial_reopens(self, breaker, clock):
        self.open_circuit(breaker)
        clock.now += 61

        with pytest.raises(RuntimeError):
            breaker.call(failing_call)
        assert breaker.state == "open"

    def test_successful_trial_closes(self, breaker, clock):
        self.open_circuit(breaker)
        clock.now += 61

        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == "closed"
        assert breaker.failure_count == 0
