# heading_estimator.py
# Turns an irregular stream of raw compass readings into a stable heading.
#
# Raw readings only update the "latest value". A fixed-rate loop (~60 Hz)
# pushes that value into a bounded history and recomputes the circular mean,
# so the output rate does not depend on how often the sensor fires.
#
# Usage:
#   estimator = HeadingEstimator(config)
#   result = await estimator.start(sensor)
#   ...
#   estimator.heading   # None until the first tick after the first sample
#   estimator.stop()

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

import numpy as np

from building_compass.compass_config import CompassConfig
from building_compass.geo_utils import normalize_degrees
from building_compass.models import HeadingState, OrientationError, StartResult

logger = logging.getLogger(__name__)

# Messages shown to the user for each advisory
ORIENTATION_MESSAGES = {
    OrientationError.UNSUPPORTED: "This device does not support orientation sensing.",
    OrientationError.DENIED:      "Orientation access was not granted. Use the button to allow it.",
}

START_PENDING_MESSAGE = "Orientation start is already waiting for consent."
START_CANCELLED_MESSAGE = "Orientation start was cancelled."


# ---------------------------------------------------------------------------
# Sensor boundary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrientationEvent:
    """A single reading from the platform orientation sensor."""
    alpha: Optional[float] = None              # rotation around z, counter-clockwise
    compass_heading: Optional[float] = None    # absolute heading, clockwise from north


def heading_from_event(event: OrientationEvent) -> Optional[float]:
    """
    Extract a compass heading from a sensor event.

    A finite absolute compass heading wins; otherwise alpha is converted
    from counter-clockwise rotation into a clockwise heading.

    Returns:
        Heading in degrees [0, 360), or None if the event carries neither.
    """
    if event.compass_heading is not None and math.isfinite(event.compass_heading):
        return normalize_degrees(event.compass_heading)
    if event.alpha is None:
        return None
    return normalize_degrees(360.0 - event.alpha + 360.0)


class OrientationSensor(ABC):
    """
    Interface expected from the platform orientation source.

    Subclasses must implement add_listener and remove_listener.
    """

    supported: bool = True
    requires_permission: bool = False

    async def request_permission(self) -> bool:
        return True

    @abstractmethod
    def add_listener(self, callback: Callable[[OrientationEvent], None]) -> None:
        """Start delivering OrientationEvents to callback."""

    @abstractmethod
    def remove_listener(self, callback: Callable[[OrientationEvent], None]) -> None:
        """Stop delivering events to callback."""


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class HeadingHistory:
    """Fixed-capacity ring of the most recent raw heading samples."""

    def __init__(self, capacity: int = 12) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._samples: Deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    def __len__(self) -> int:
        return len(self._samples)

    def push(self, sample: float) -> None:
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples.clear()

    def circular_mean(self) -> Optional[float]:
        """
        Wrap-around safe mean of the stored headings.

        350° and 10° average to 0°, not 180°.
        """
        if not self._samples:
            return None
        rad = np.radians(np.fromiter(self._samples, dtype=float))
        mean_sin = float(np.sin(rad).mean())
        mean_cos = float(np.cos(rad).mean())
        return normalize_degrees(math.degrees(math.atan2(mean_sin, mean_cos)))


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------

class HeadingEstimator:
    """
    Owns one heading history and its re-sampling loop.

    Each compass view creates its own instance; nothing is shared.

    Args:
        config: CompassConfig for history size and tick rate.
    """

    def __init__(self, config: Optional[CompassConfig] = None) -> None:
        self.config = config or CompassConfig()
        self._history = HeadingHistory(self.config.heading_history_size)
        self._raw: Optional[float] = None
        self._heading: Optional[float] = None
        self._state = HeadingState.IDLE
        self._error: Optional[OrientationError] = None
        self._sensor: Optional[OrientationSensor] = None
        self._task: Optional["asyncio.Task[None]"] = None
        self._starting = False
        self._generation = 0               # bumped by stop() to abandon a pending start

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> HeadingState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is HeadingState.LISTENING

    @property
    def is_starting(self) -> bool:
        return self._starting

    @property
    def heading(self) -> Optional[float]:
        return self._heading

    @property
    def raw_heading(self) -> Optional[float]:
        return self._raw

    @property
    def error(self) -> Optional[OrientationError]:
        return self._error

    @property
    def error_message(self) -> str:
        return ORIENTATION_MESSAGES[self._error] if self._error else ""

    @property
    def history_size(self) -> int:
        return len(self._history)

    def heading_or_default(self) -> float:
        """Heading for layout math: 0 (north up) until a value exists."""
        return self._heading if self._heading is not None else 0.0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, sensor: Optional[OrientationSensor]) -> StartResult:
        """
        Ask for consent if needed, then begin listening.

        Must be awaited from inside a running event loop. A failed start
        leaves the estimator IDLE with the error flag set.

        Args:
            sensor: Platform orientation source, or None if there is none.

        Returns:
            StartResult describing success or the advisory raised.
        """
        if self.is_listening:
            return StartResult(ok=True)
        if self._starting:
            return StartResult(ok=False, message=START_PENDING_MESSAGE)

        self._error = None
        if sensor is None or not sensor.supported:
            return self._fail(OrientationError.UNSUPPORTED)

        if sensor.requires_permission:
            generation = self._generation
            self._starting = True
            try:
                granted = await sensor.request_permission()
            except PermissionError as e:
                logger.warning(f"[Heading] Permission request rejected: {e}")
                granted = False
            finally:
                if generation == self._generation:
                    self._starting = False
            if generation != self._generation:
                logger.info("[Heading] Start abandoned: stopped while waiting for consent.")
                return StartResult(ok=False, message=START_CANCELLED_MESSAGE)
            if not granted:
                return self._fail(OrientationError.DENIED)

        self._history.clear()
        self._raw = None
        self._heading = None
        self._sensor = sensor
        sensor.add_listener(self.handle_event)
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._state = HeadingState.LISTENING
        logger.info(f"[Heading] Listening at {self.config.tick_hz:.0f} Hz.")
        return StartResult(ok=True)

    def stop(self) -> None:
        """Unregister the listener, cancel the loop and drop all history."""
        self._generation += 1
        self._starting = False
        if self._sensor is not None:
            self._sensor.remove_listener(self.handle_event)
            self._sensor = None
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._history.clear()
        self._raw = None
        self._heading = None
        if self._state is HeadingState.LISTENING:
            logger.info("[Heading] Stopped.")
        self._state = HeadingState.IDLE

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def ingest_raw(self, sample: float) -> None:
        """Record the latest raw heading. Does not recompute anything."""
        self._raw = normalize_degrees(sample)
        self._error = None

    def handle_event(self, event: OrientationEvent) -> None:
        value = heading_from_event(event)
        if value is None:
            return
        self.ingest_raw(value)

    # ------------------------------------------------------------------
    # Re-sampling
    # ------------------------------------------------------------------

    def tick(self) -> Optional[float]:
        """
        One re-sampling pass. Called by the loop, or directly in tests.

        Returns:
            The smoothed heading after this pass.
        """
        if self._raw is not None:
            self._history.push(self._raw)
            self._heading = self._history.circular_mean()
        return self._heading

    async def _run(self) -> None:
        interval = self.config.tick_interval_s
        while True:
            self.tick()
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fail(self, error: OrientationError) -> StartResult:
        self._error = error
        message = ORIENTATION_MESSAGES[error]
        logger.warning(f"[Heading] {message}")
        return StartResult(ok=False, error=error, message=message)
