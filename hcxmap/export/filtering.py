"""
Selection of "interesting" access points for the filtered exports.
"""

from pathlib import Path
from typing import Iterable, List

from hcxmap.analysis.types import AccessPoint
from hcxmap.parsers.security import SecurityKind

NO_KEY_NEEDED = {SecurityKind.OPEN, SecurityKind.WEP}
KEYED = {SecurityKind.WPA, SecurityKind.WPA2, SecurityKind.WPA3, SecurityKind.WPA2WPA3}


def is_interesting(ap: AccessPoint) -> bool:
    """Open/WEP networks, or WPA-family networks whose password was recovered."""
    if ap.security in NO_KEY_NEEDED:
        return True
    if ap.security in KEYED:
        return ap.password is not None
    return False


def filter_interesting(aps: Iterable[AccessPoint]) -> List[AccessPoint]:
    return [ap for ap in aps if is_interesting(ap)]


def filtered_name(path: str) -> str:
    """``wifi_aps.csv`` -> ``wifi_aps_filtered.csv``; no suffix -> ``name_filtered``."""
    p = Path(path)
    if p.suffix:
        return str(p.with_name(f"{p.stem}_filtered{p.suffix}"))
    return f"{path}_filtered"
