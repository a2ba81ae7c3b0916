"""
CSV export of located access points.
"""

import csv
from typing import Iterable

from hcxmap.analysis.types import AccessPoint
from hcxmap.utils.log import get_logger
from hcxmap.utils.validate import AccessPointRecord

logger = get_logger(__name__)

HEADER = [
    "MAC", "SSID", "Security", "Latitude", "Longitude",
    "Observations", "Method", "MinRSSI", "MaxRSSI", "AvgRSSI",
]


def export_to_csv(aps: Iterable[AccessPoint], filename: str) -> int:
    """
    Write one row per AP that has an estimated position.

    Returns
    -------
    int
        Number of rows written (header excluded).
    """
    rows = 0
    with open(filename, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(HEADER)
        for ap in aps:
            if ap.estimated_position is None:
                continue
            rec = AccessPointRecord.from_access_point(ap)
            writer.writerow([
                rec.mac,
                (rec.ssid or "").replace(",", ";"),
                rec.security,
                f"{rec.latitude:.6f}",
                f"{rec.longitude:.6f}",
                rec.n_obs,
                rec.method,
                rec.min_rssi,
                rec.max_rssi,
                f"{rec.avg_rssi:.1f}",
            ])
            rows += 1
    logger.info("Exported %d access points to %s", rows, filename)
    return rows
