# hcxmap/analysis/track.py

"""
Time-ordered GPS track with point-in-time interpolation.
"""

from __future__ import annotations

from bisect import bisect_left
from typing import Iterable, Iterator, List, Optional

from hcxmap.analysis.types import Position


class PositionTrack:
    """
    Ordered sequence of GPS fixes.

    Fixes are sorted ascending by timestamp on construction; `at` relies on it.
    """
    def __init__(self, fixes: Iterable[Position] = ()) -> None:
        self.fixes: List[Position] = sorted(fixes, key=lambda p: p.timestamp)
        self._times: List[int] = [p.timestamp for p in self.fixes]

    def __len__(self) -> int:
        return len(self.fixes)

    def __iter__(self) -> Iterator[Position]:
        return iter(self.fixes)

    @property
    def start(self) -> Optional[int]:
        return self._times[0] if self._times else None

    @property
    def end(self) -> Optional[int]:
        return self._times[-1] if self._times else None

    def at(self, timestamp: float) -> Optional[Position]:
        """
        Interpolate the observer position at `timestamp` (seconds, truncated).

        Returns
        -------
        Optional[Position]
            The lone fix for a one-fix track; a linear interpolation inside
            the first bracketing pair of fixes otherwise; None for an empty
            track or a timestamp outside the track.
        """
        if not self.fixes:
            return None
        if len(self.fixes) == 1:
            return self.fixes[0]

        t = int(timestamp)
        # first fix at or after t closes the first bracketing pair
        i = bisect_left(self._times, t)
        if i == len(self._times):
            return None
        if i == 0:
            if t != self._times[0]:
                return None
            i = 1

        p1, p2 = self.fixes[i - 1], self.fixes[i]
        span = p2.timestamp - p1.timestamp
        ratio = (t - p1.timestamp) / span if span else 0.0
        return Position(
            latitude=p1.latitude + (p2.latitude - p1.latitude) * ratio,
            longitude=p1.longitude + (p2.longitude - p1.longitude) * ratio,
            timestamp=t,
        )
