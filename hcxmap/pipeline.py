"""
End-to-end locate run: GPS track, capture decoding, aggregation, enrichment,
position estimation.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from hcxmap.analysis.aggregate import aggregate
from hcxmap.analysis.config import LocatorConfig
from hcxmap.analysis.estimate import EstimatorPipeline
from hcxmap.analysis.track import PositionTrack
from hcxmap.analysis.types import AccessPoint
from hcxmap.parsers import hashcat, nmea, pcapng
from hcxmap.utils.log import get_logger
from hcxmap.utils.mac import bind_vendors, load_vendors

logger = get_logger(__name__)


@dataclass
class LocateResult:
    """
    Output of one run over a working directory.
    """
    workdir: Path
    track: PositionTrack
    access_points: List[AccessPoint] = field(default_factory=list)


def locate(
    workdir: Path,
    cfg: Optional[LocatorConfig] = None,
    use_hashcat: bool = True,
    vendor_file: Optional[Path] = None,
) -> LocateResult:
    """
    Run the whole pipeline over the `.nmea`, `.pcapng` and `.22000` files
    found directly in `workdir`.

    Raises
    ------
    FileNotFoundError, NotADirectoryError
        When `workdir` cannot be scanned.
    """
    cfg = cfg or LocatorConfig.default()
    workdir = Path(workdir)

    track = PositionTrack(nmea.get_positions(workdir))
    logger.info("Found %d positions", len(track))

    packets, _ = pcapng.get_packets(workdir)
    logger.info("Found %d beacon packets", len(packets))

    aps_by_mac, _ = aggregate(packets, track, cfg)
    aps = list(aps_by_mac.values())
    logger.info("Found %d unique access points", len(aps))

    table = load_vendors(vendor_file) if vendor_file else None
    n_vendors = bind_vendors(aps, table)
    logger.info("Bound vendors to %d access points", n_vendors)

    if use_hashcat:
        n_passwords = hashcat.bind_passwords(aps, hashcat.get_passwords(workdir))
        logger.info("Bound passwords to %d access points", n_passwords)

    EstimatorPipeline(cfg).run(aps)
    return LocateResult(workdir=workdir, track=track, access_points=aps)
