# hcxmap/analysis/types.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, TypeVar

from hcxmap.parsers.security import SecurityKind

T = TypeVar("T")


def merge_optional(current: Optional[T], candidate: Optional[T]) -> Optional[T]:
    """
    Fill-if-unset merge: keep `current` when it holds a value, else take `candidate`.
    """
    return current if current is not None else candidate


def format_mac(mac: bytes) -> str:
    """Render 6 raw bytes as ``aa:bb:cc:dd:ee:ff``."""
    return ":".join(f"{b:02x}" for b in mac)


@dataclass(frozen=True)
class Position:
    """
    A GPS fix, or a position derived from fixes.

    Parameters
    ----------
    latitude : float
        Latitude in decimal degrees.
    longitude : float
        Longitude in decimal degrees.
    timestamp : int
        Seconds since epoch (UTC).
    """
    latitude: float
    longitude: float
    timestamp: int


@dataclass
class Observation:
    """
    One packet sighting of an AP, correlated with the observer position.

    Parameters
    ----------
    position : Position
        Interpolated observer position at capture time.
    signal_strength : int
        Received signal strength in dBm.
    distance : float
        Path-loss distance estimate in metres, derived from the signal.
    """
    position: Position
    signal_strength: int
    distance: float


@dataclass
class Packet:
    """
    Decoder output for one capture record.

    Parameters
    ----------
    timestamp : float
        Capture time, seconds since epoch.
    source_address : bytes, optional
        6-byte AP address (BSSID).
    ssid : str, optional
        Network name from a beacon or probe response.
    signal_strength : int, optional
        Radiotap antenna signal in dBm.
    channel : int, optional
        Channel number mapped from the radiotap frequency.
    security : SecurityKind, optional
        Classification from beacon/probe-response capabilities and elements.
    """
    timestamp: float
    source_address: Optional[bytes] = None
    ssid: Optional[str] = None
    signal_strength: Optional[int] = None
    channel: Optional[int] = None
    security: Optional[SecurityKind] = None


@dataclass
class AccessPoint:
    """
    Everything known about one AP, keyed by its MAC address.

    The estimation stage fills `estimated_position` and `position_method`;
    `vendor` and `password` are filled by the enrichment collaborators.
    """
    mac: bytes
    ssid: Optional[str] = None
    observations: List[Observation] = field(default_factory=list)
    estimated_position: Optional[Position] = None
    position_method: Optional[str] = None
    security: Optional[SecurityKind] = None
    channel: Optional[int] = None
    vendor: Optional[str] = None
    password: Optional[str] = None

    @property
    def mac_str(self) -> str:
        return format_mac(self.mac)

    @property
    def min_rssi(self) -> int:
        return min((o.signal_strength for o in self.observations), default=0)

    @property
    def max_rssi(self) -> int:
        return max((o.signal_strength for o in self.observations), default=0)

    @property
    def avg_rssi(self) -> float:
        if not self.observations:
            return 0.0
        return sum(o.signal_strength for o in self.observations) / len(self.observations)
