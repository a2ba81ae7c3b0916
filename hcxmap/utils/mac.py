"""
MAC address helpers and OUI vendor lookup.
"""

import csv
from pathlib import Path
from typing import Dict, Iterable, Optional

from mac_vendor_lookup import MacLookup, VendorNotFoundError

from hcxmap.analysis.types import AccessPoint, merge_optional
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)

_mac_lookup = MacLookup()


def parse_mac(text: str) -> Optional[bytes]:
    """
    Parse ``aabbccddeeff`` or a ``:``/``-`` separated MAC into 6 raw bytes.

    Returns None for anything that is not exactly 6 hex octets.
    """
    digits = text.strip().replace(":", "").replace("-", "")
    if len(digits) != 12:
        return None
    try:
        return bytes.fromhex(digits)
    except ValueError:
        return None


def oui(mac: bytes) -> str:
    """Upper-case ``AA:BB:CC`` prefix of a raw MAC."""
    return ":".join(f"{b:02X}" for b in mac[:3])


def lookup_vendor(mac: bytes) -> Optional[str]:
    """Look up the manufacturer of `mac` in the IEEE OUI database."""
    address = ":".join(f"{b:02X}" for b in mac)
    try:
        return _mac_lookup.lookup(address)
    except VendorNotFoundError:
        return None
    except Exception:
        logger.debug("Vendor lookup failed for %s", address, exc_info=True)
        return None


def load_vendors(path: Path) -> Dict[str, str]:
    """
    Load a ``Mac Prefix,Vendor Name`` override table keyed by upper-case OUI.

    Rows that do not have at least two columns are logged and skipped.
    """
    table: Dict[str, str] = {}
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if len(row) < 2:
                logger.debug("Malformed line in MAC vendors CSV: %s", row)
                continue
            table[row[0].strip().upper()] = row[1].strip()
    return table


def bind_vendors(aps: Iterable[AccessPoint], table: Optional[Dict[str, str]] = None) -> int:
    """
    Fill each AP's unset `vendor`.

    Parameters
    ----------
    aps
        Access points to enrich in place.
    table
        Optional OUI -> vendor override (see `load_vendors`); when given it
        replaces the OUI database.

    Returns
    -------
    int
        Number of APs that carry a vendor afterwards.
    """
    bound = 0
    for ap in aps:
        if ap.vendor is None:
            found = table.get(oui(ap.mac)) if table is not None else lookup_vendor(ap.mac)
            ap.vendor = merge_optional(ap.vendor, found)
        if ap.vendor is not None:
            bound += 1
            logger.debug("Bound vendor '%s' to AP %s", ap.vendor, ap.mac_str)
    return bound
