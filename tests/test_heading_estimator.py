"""Tests for heading_estimator.py: history, smoothing and the start/stop lifecycle."""
import asyncio

import pytest

from building_compass.compass_config import CompassConfig
from building_compass.heading_estimator import (
    HeadingEstimator, HeadingHistory, OrientationEvent, OrientationSensor,
    heading_from_event,
)
from building_compass.models import HeadingState, OrientationError

from conftest import FakeSensor


def circular_gap(a, b):
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


# --- HeadingHistory ---

def test_empty_history_has_no_mean():
    assert HeadingHistory().circular_mean() is None


def test_circular_mean_wraps_around_north():
    history = HeadingHistory()
    history.push(350.0)
    history.push(10.0)
    assert circular_gap(history.circular_mean(), 0.0) < 1e-9


def test_circular_mean_of_single_sample():
    history = HeadingHistory()
    history.push(123.0)
    assert history.circular_mean() == pytest.approx(123.0)


def test_circular_mean_in_range():
    history = HeadingHistory()
    for deg in (300.0, 310.0, 320.0):
        history.push(deg)
    mean = history.circular_mean()
    assert 0.0 <= mean < 360.0
    assert mean == pytest.approx(310.0)


def test_history_evicts_oldest():
    history = HeadingHistory(capacity=3)
    for deg in (1.0, 2.0, 3.0, 4.0):
        history.push(deg)
    assert len(history) == 3
    assert history.circular_mean() == pytest.approx(3.0)


def test_history_rejects_zero_capacity():
    with pytest.raises(ValueError):
        HeadingHistory(capacity=0)


# --- heading_from_event ---

def test_event_prefers_compass_heading():
    assert heading_from_event(OrientationEvent(alpha=10.0, compass_heading=200.0)) == 200.0


def test_event_alpha_is_counter_clockwise():
    assert heading_from_event(OrientationEvent(alpha=90.0)) == pytest.approx(270.0)
    assert heading_from_event(OrientationEvent(alpha=0.0)) == pytest.approx(0.0)


def test_event_non_finite_compass_falls_back_to_alpha():
    event = OrientationEvent(alpha=30.0, compass_heading=float("nan"))
    assert heading_from_event(event) == pytest.approx(330.0)


def test_event_without_data_is_ignored():
    assert heading_from_event(OrientationEvent()) is None


# --- tick / ingest ---

def test_heading_is_none_until_first_tick():
    est = HeadingEstimator()
    assert est.heading is None
    est.ingest_raw(45.0)
    assert est.heading is None
    est.tick()
    assert est.heading == pytest.approx(45.0)


def test_tick_without_raw_keeps_none():
    est = HeadingEstimator()
    assert est.tick() is None
    assert est.history_size == 0


def test_heading_or_default_is_north_without_data():
    assert HeadingEstimator().heading_or_default() == 0.0


def test_ingest_does_not_recompute():
    est = HeadingEstimator()
    est.ingest_raw(10.0)
    est.tick()
    est.ingest_raw(100.0)
    est.ingest_raw(200.0)
    assert est.heading == pytest.approx(10.0)
    assert est.raw_heading == 200.0


def test_tick_repeats_latest_sample():
    est = HeadingEstimator()
    est.ingest_raw(0.0)
    est.tick()
    est.ingest_raw(90.0)
    for _ in range(3):
        est.tick()
    # history: [0, 90, 90, 90]
    assert est.history_size == 4
    assert 45.0 < est.heading < 90.0


def test_oldest_sample_stops_influencing_after_thirteen():
    est = HeadingEstimator(CompassConfig(heading_history_size=12))
    est.ingest_raw(270.0)
    est.tick()
    est.ingest_raw(0.0)
    for _ in range(11):
        est.tick()
    assert circular_gap(est.heading, 0.0) > 1.0
    est.tick()
    assert est.history_size == 12
    assert circular_gap(est.heading, 0.0) < 1e-9


# --- start / stop ---

def test_start_without_sensor_is_unsupported():
    est = HeadingEstimator()
    result = asyncio.run(est.start(None))
    assert not result.ok
    assert result.error is OrientationError.UNSUPPORTED
    assert est.state is HeadingState.IDLE
    assert est.error is OrientationError.UNSUPPORTED
    assert est.error_message


def test_start_with_unsupported_sensor():
    sensor = FakeSensor(supported=False)
    result = asyncio.run(HeadingEstimator().start(sensor))
    assert result.error is OrientationError.UNSUPPORTED
    assert sensor.listeners == []


def test_start_with_denied_consent_stays_idle():
    sensor = FakeSensor(requires_permission=True, grant=False)
    est = HeadingEstimator()
    result = asyncio.run(est.start(sensor))
    assert not result.ok
    assert result.error is OrientationError.DENIED
    assert sensor.permission_requests == 1
    assert sensor.listeners == []
    assert est.state is HeadingState.IDLE


def test_unsupported_and_denied_messages_differ():
    est = HeadingEstimator()
    unsupported = asyncio.run(est.start(None)).message
    denied = asyncio.run(est.start(FakeSensor(requires_permission=True, grant=False))).message
    assert unsupported != denied


def test_start_listens_and_stop_releases_everything():
    sensor = FakeSensor(requires_permission=True, grant=True)
    est = HeadingEstimator(CompassConfig(tick_hz=500.0))

    async def scenario():
        result = await est.start(sensor)
        assert result.ok
        assert est.state is HeadingState.LISTENING
        assert len(sensor.listeners) == 1

        sensor.emit(OrientationEvent(compass_heading=355.0))
        sensor.emit(OrientationEvent(compass_heading=5.0))
        await asyncio.sleep(0.05)
        heading = est.heading
        task = est._task

        est.stop()
        await asyncio.sleep(0.01)
        return heading, task

    heading, task = asyncio.run(scenario())
    assert circular_gap(heading, 5.0) < 1e-6
    assert task.cancelled()
    assert sensor.listeners == []
    assert est.state is HeadingState.IDLE
    assert est.heading is None
    assert est.history_size == 0


def test_restart_begins_with_empty_history():
    sensor = FakeSensor()
    est = HeadingEstimator()

    async def scenario():
        await est.start(sensor)
        est.ingest_raw(90.0)
        est.tick()
        est.stop()
        await est.start(sensor)
        size = est.history_size
        est.stop()
        return size

    assert asyncio.run(scenario()) == 0


def test_second_start_is_noop():
    sensor = FakeSensor()
    est = HeadingEstimator()

    async def scenario():
        await est.start(sensor)
        result = await est.start(sensor)
        count = len(sensor.listeners)
        est.stop()
        return result, count

    result, count = asyncio.run(scenario())
    assert result.ok
    assert count == 1


def test_stop_when_idle_is_safe():
    est = HeadingEstimator()
    est.stop()
    est.stop()
    assert est.state is HeadingState.IDLE


def test_error_clears_after_successful_start():
    est = HeadingEstimator()
    sensor = FakeSensor()

    async def scenario():
        await est.start(None)
        assert est.error is OrientationError.UNSUPPORTED
        result = await est.start(sensor)
        est.stop()
        return result

    assert asyncio.run(scenario()).ok
    assert est.error is None


def test_estimators_are_independent():
    a, b = HeadingEstimator(), HeadingEstimator()
    a.ingest_raw(90.0)
    a.tick()
    assert a.heading == pytest.approx(90.0)
    assert b.heading is None


# --- interleaved start / stop ---

def test_stop_during_consent_leaves_nothing_running():
    est = HeadingEstimator()

    async def scenario():
        gate = asyncio.Event()
        sensor = FakeSensor(requires_permission=True, grant=True, consent_gate=gate)
        pending = asyncio.ensure_future(est.start(sensor))
        await asyncio.sleep(0)
        assert est.is_starting
        est.stop()
        gate.set()
        result = await pending
        return result, sensor

    result, sensor = asyncio.run(scenario())
    assert not result.ok
    assert result.error is None
    assert est.state is HeadingState.IDLE
    assert not est.is_starting
    assert sensor.listeners == []
    assert est._task is None


def test_second_start_while_consent_pending_is_rejected():
    est = HeadingEstimator()

    async def scenario():
        gate = asyncio.Event()
        sensor = FakeSensor(requires_permission=True, grant=True, consent_gate=gate)
        first = asyncio.ensure_future(est.start(sensor))
        second = asyncio.ensure_future(est.start(sensor))
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(first, second)
        listeners = len(sensor.listeners)
        task = est._task
        est.stop()
        return results, listeners, task, sensor

    (first, second), listeners, task, sensor = asyncio.run(scenario())
    assert first.ok
    assert not second.ok
    assert sensor.permission_requests == 1
    assert listeners == 1
    assert task is not None
    assert sensor.listeners == []


def test_start_after_abandoned_consent_succeeds():
    est = HeadingEstimator()

    async def scenario():
        gate = asyncio.Event()
        sensor = FakeSensor(requires_permission=True, grant=True, consent_gate=gate)
        pending = asyncio.ensure_future(est.start(sensor))
        await asyncio.sleep(0)
        est.stop()
        gate.set()
        await pending
        result = await est.start(sensor)
        state = est.state
        est.stop()
        return result, state

    result, state = asyncio.run(scenario())
    assert result.ok
    assert state is HeadingState.LISTENING


# --- sensor interface ---

def test_sensor_without_listener_methods_cannot_be_built():
    class HalfSensor(OrientationSensor):
        def add_listener(self, callback):
            pass

    with pytest.raises(TypeError):
        HalfSensor()
