# deviation_detector.py
# Decides, from a noisy stream of location fixes, whether the traveler has
# left the current leg's path and whether a new route should be requested.

import logging
from collections import deque
from typing import Deque, Optional, Sequence

import numpy as np

from .directions import DirectionsGateway
from .errors import ProviderError
from .geo_utils import closest_point_on_polyline
from .models import (
    ON_ROUTE, Coordinate, DeviationResult, DeviationStats, LocationFix, NamedPoint, TravelMode,
)
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class DeviationDetector:
    """
    Route deviation detector for one leg at a time.

    Call check_deviation() on every location fix and reset() whenever the
    leg changes or a recalculated route is accepted.

    Args:
        config:  NavConfig instance (thresholds, gates, buffer size).
        gateway: Directions source for suggest_recalculation().
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        gateway: Optional[DirectionsGateway] = None,
    ) -> None:
        self.config = config or NavConfig()
        self.gateway = gateway
        self._buffer: Deque[LocationFix] = deque(maxlen=self.config.buffer_size)
        self._consecutive_deviations = 0
        self._deviation_start: Optional[float] = None
        self._last_result: DeviationResult = ON_ROUTE
        self._last_timestamp: Optional[float] = None

    # ------------------------------------------------------------------
    # Buffer
    # ------------------------------------------------------------------

    def add_location_fix(self, fix: LocationFix) -> bool:
        """
        Add a fix to the smoothing buffer.

        Returns:
            False if the fix was discarded for poor accuracy.
        """
        if fix.accuracy is not None and fix.accuracy > self.config.min_accuracy_m:
            logger.debug(f"Ignoring GPS reading with poor accuracy: {fix.accuracy} m")
            return False
        self._buffer.append(fix)
        return True

    def smoothed_location(self) -> Optional[LocationFix]:
        """Weighted average of the buffer, newer fixes weighing more."""
        if not self._buffer:
            return None
        weights = np.arange(1, len(self._buffer) + 1, dtype=float)
        lats = np.fromiter((f.lat for f in self._buffer), dtype=float, count=len(self._buffer))
        lngs = np.fromiter((f.lng for f in self._buffer), dtype=float, count=len(self._buffer))
        return LocationFix(
            lat=float(np.average(lats, weights=weights)),
            lng=float(np.average(lngs, weights=weights)),
            timestamp=max(f.timestamp for f in self._buffer),
        )

    # ------------------------------------------------------------------
    # Core method, call on every location fix
    # ------------------------------------------------------------------

    def check_deviation(
        self,
        fix: LocationFix,
        route_coordinates: Sequence[Coordinate],
        mode: TravelMode,
    ) -> DeviationResult:
        """
        Compare a new fix against the current leg's path.

        Args:
            fix:               Raw location fix from the device.
            route_coordinates: Polyline of the current leg.
            mode:              Travel mode, selects the distance threshold.

        Returns:
            DeviationResult. A discarded fix returns the previous verdict.
        """
        if not self.add_location_fix(fix):
            return self._last_result

        smoothed = self.smoothed_location()
        if smoothed is None:
            return ON_ROUTE

        match = closest_point_on_polyline(smoothed.coordinate, route_coordinates)
        if match is None:
            return ON_ROUTE

        distance = match.distance
        threshold = self.config.threshold_for(mode)
        is_off_route = distance > threshold

        if is_off_route:
            self._consecutive_deviations += 1
            if self._deviation_start is None:
                self._deviation_start = smoothed.timestamp
        else:
            self._consecutive_deviations = 0
            self._deviation_start = None
        self._last_timestamp = smoothed.timestamp

        suggest = self._should_recalculate(distance, threshold, smoothed.timestamp)
        snap = match.point if distance <= threshold * self.config.snap_factor else None

        if is_off_route:
            logger.info(
                f"Route deviation detected: mode={mode.value} distance={distance:.0f}m "
                f"threshold={threshold:.0f}m consecutive={self._consecutive_deviations} "
                f"suggest_recalc={suggest}"
            )

        self._last_result = DeviationResult(
            is_off_route=is_off_route,
            deviation_distance=distance,
            suggest_recalculation=suggest,
            snap_to_route_location=snap,
            reason=self._deviation_reason(distance, threshold) if is_off_route else None,
        )
        return self._last_result

    def _should_recalculate(self, distance: float, threshold: float, now: float) -> bool:
        severe = distance > threshold * self.config.severe_deviation_factor
        sustained = (
            self._deviation_start is not None
            and now - self._deviation_start > self.config.deviation_time_threshold_s
        )
        repeated = self._consecutive_deviations >= self.config.consecutive_deviation_limit
        return severe or sustained or repeated

    @staticmethod
    def _deviation_reason(distance: float, threshold: float) -> str:
        if distance > threshold * 3:
            return f"You have moved far away from the route ({distance:.0f} m)."
        elif distance > threshold * 2:
            return f"You have left the recommended route ({distance:.0f} m)."
        return f"Slight deviation from the route ({distance:.0f} m)."

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    async def suggest_recalculation(
        self,
        current_location: Coordinate,
        remaining_destinations: Sequence[NamedPoint],
        mode: TravelMode,
    ) -> bool:
        """
        Check whether a fresh route to the next destination can be obtained.

        Does not touch any route; the caller decides whether to replace legs.
        """
        if not remaining_destinations or self.gateway is None:
            return False

        target = remaining_destinations[0]
        logger.info(f"Requesting recalculated route to {target.name}")
        try:
            await self.gateway.get_route(current_location, target.location, mode, self.config.language)
        except ProviderError as e:
            logger.error(f"Route recalculation failed: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected error while recalculating route to {target.name}")
            return False
        return True

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget all buffered fixes and the current deviation episode."""
        self._buffer.clear()
        self._consecutive_deviations = 0
        self._deviation_start = None
        self._last_result = ON_ROUTE
        self._last_timestamp = None

    def stats(self) -> DeviationStats:
        duration = 0.0
        if self._deviation_start is not None and self._last_timestamp is not None:
            duration = self._last_timestamp - self._deviation_start
        return DeviationStats(
            buffer_size=len(self._buffer),
            consecutive_deviations=self._consecutive_deviations,
            deviation_duration=duration,
        )
