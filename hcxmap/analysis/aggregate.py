"""
Group decoded packets by AP address and attach GPS-correlated observations.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, Optional, Tuple

from hcxmap.analysis.config import LocatorConfig
from hcxmap.analysis.track import PositionTrack
from hcxmap.analysis.types import AccessPoint, Observation, Packet, merge_optional
from hcxmap.utils.geo import rssi_to_distance
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)


class AggregateStats(Counter):
    """
    Per-reason tally of correlated and dropped packets.

    Keys: ``used``, ``no_address``, ``no_signal``, ``no_position``.
    """

    @property
    def dropped(self) -> int:
        return sum(v for k, v in self.items() if k != "used")


def aggregate(
    packets: Iterable[Packet],
    track: PositionTrack,
    cfg: Optional[LocatorConfig] = None,
) -> Tuple[Dict[bytes, AccessPoint], AggregateStats]:
    """
    Fold packets into per-MAC AccessPoints.

    Packets without an address, a signal, or GPS coverage at their capture
    time are dropped and counted. The first packet carrying an SSID,
    security or channel seeds that field; later values never replace it.

    Returns
    -------
    (access_points, stats)
        APs keyed by raw MAC in first-seen order, and the drop tally.
    """
    cfg = cfg or LocatorConfig.default()
    aps: Dict[bytes, AccessPoint] = {}
    stats = AggregateStats()

    for packet in packets:
        if packet.source_address is None:
            stats["no_address"] += 1
            continue
        if packet.signal_strength is None:
            stats["no_signal"] += 1
            continue
        pos = track.at(packet.timestamp)
        if pos is None:
            stats["no_position"] += 1
            continue

        distance = rssi_to_distance(
            packet.signal_strength, cfg.rssi_at_1m, cfg.path_loss_exponent
        )
        ap = aps.get(packet.source_address)
        if ap is None:
            ap = aps[packet.source_address] = AccessPoint(mac=packet.source_address)

        ap.observations.append(Observation(pos, packet.signal_strength, distance))
        ap.ssid = merge_optional(ap.ssid, packet.ssid)
        ap.security = merge_optional(ap.security, packet.security)
        ap.channel = merge_optional(ap.channel, packet.channel)
        stats["used"] += 1

    logger.info(
        "Correlated %d packets; dropped %d (%d without GPS coverage)",
        stats["used"], stats.dropped, stats["no_position"],
    )
    return aps, stats
