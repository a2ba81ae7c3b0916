"""
Pydantic schemas for exported and served records.
"""

from typing import Optional
from pydantic import BaseModel

from hcxmap.analysis.types import AccessPoint, Position


class AccessPointRecord(BaseModel):
    """
    Flat record for a single located access point.
    """
    mac: str
    ssid: Optional[str]
    security: str
    latitude: float
    longitude: float
    n_obs: int
    method: str
    min_rssi: int
    max_rssi: int
    avg_rssi: float
    channel: Optional[int] = None
    vendor: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_access_point(cls, ap: AccessPoint) -> "AccessPointRecord":
        """
        Flatten an AP that has an estimated position.

        Raises
        ------
        ValueError
            If the AP has no estimate yet.
        """
        pos = ap.estimated_position
        if pos is None:
            raise ValueError(f"access point {ap.mac_str} has no estimated position")
        return cls(
            mac=ap.mac_str,
            ssid=ap.ssid,
            security=str(ap.security) if ap.security is not None else "Unknown",
            latitude=pos.latitude,
            longitude=pos.longitude,
            n_obs=len(ap.observations),
            method=ap.position_method or "unknown",
            min_rssi=ap.min_rssi,
            max_rssi=ap.max_rssi,
            avg_rssi=ap.avg_rssi,
            channel=ap.channel,
            vendor=ap.vendor,
            password=ap.password,
        )


class TrackPoint(BaseModel):
    """
    Single GPS fix of the capture walk/drive.
    """
    ts: int
    lat: float
    lon: float

    @classmethod
    def from_position(cls, pos: Position) -> "TrackPoint":
        return cls(ts=pos.timestamp, lat=pos.latitude, lon=pos.longitude)
