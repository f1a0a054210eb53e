import logging
import threading
import time

import pytest

from localizer.errors import NotReadyError, ShutdownError
from localizer.readiness import ReadinessGate


def test_wait_returns_once_both_conditions_hold():
    gate = ReadinessGate()
    gate.set_map_ready()
    gate.set_fix_ready()
    gate.wait(timeout=0.1)
    assert gate.is_ready


def test_wait_times_out_and_names_missing_input(caplog):
    gate = ReadinessGate(warn_interval=0.02)
    gate.set_map_ready()
    with caplog.at_level(logging.WARNING, logger="localizer.readiness"):
        with pytest.raises(NotReadyError, match="fix"):
            gate.wait(timeout=0.1)
    assert "waiting for gps data" in caplog.text
    assert "waiting for map data" not in caplog.text


def test_wait_is_woken_by_arrival_from_another_thread():
    gate = ReadinessGate(warn_interval=5.0)
    gate.set_fix_ready()
    timer = threading.Timer(0.05, gate.set_map_ready)
    timer.start()
    start = time.monotonic()
    gate.wait(timeout=2.0)
    assert time.monotonic() - start < 1.0
    timer.join()


def test_cancel_releases_waiter():
    gate = ReadinessGate()
    errors = []

    def waiter():
        try:
            gate.wait(timeout=5.0)
        except ShutdownError as exc:
            errors.append(exc)

    thread = threading.Thread(target=waiter)
    thread.start()
    time.sleep(0.05)
    gate.cancel()
    thread.join(timeout=2.0)
    assert not thread.is_alive()
    assert len(errors) == 1
    assert gate.cancelled
