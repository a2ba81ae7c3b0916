"""
802.11 frame decoder: turn one radiotap-prefixed capture record into a
normalized Packet (AP address, SSID, signal, channel, security).
"""

import struct
from collections import Counter
from typing import Optional

from hcxmap.analysis.types import Packet
from hcxmap.parsers.elements import TAG_SSID, iter_elements
from hcxmap.parsers.radiotap import RadiotapError, parse_radiotap
from hcxmap.parsers.security import FIXED_PARAMS_LEN, classify_security
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)

DOT11_HEADER_LEN = 24
FCS_LEN = 4
CAPABILITY_OFFSET = 34

TYPE_MGMT = 0
TYPE_DATA = 2

SUBTYPE_ASSOC_RESP = 1
SUBTYPE_REASSOC_RESP = 3
SUBTYPE_PROBE_RESP = 5
SUBTYPE_BEACON = 8

# (to_ds, from_ds) -> slice of the AP address in a data frame header
DATA_AP_ADDRESS = {
    (1, 0): slice(4, 10),    # addr1: BSSID
    (0, 1): slice(10, 16),   # addr2: BSSID
    (0, 0): slice(16, 22),   # addr3: BSSID
}

FREQ_TO_CHANNEL: dict[int, int] = {
    **{2407 + 5 * ch: ch for ch in range(1, 14)},
    2484: 14,
    **{5000 + 5 * ch: ch for ch in (36, 40, 44, 48, 52, 56, 60, 64)},
    **{5000 + 5 * ch: ch for ch in range(100, 141, 4)},
    **{5000 + 5 * ch: ch for ch in (149, 153, 157, 161, 165)},
}


def frequency_to_channel(freq_mhz: Optional[int]) -> Optional[int]:
    """
    Convert a channel centre frequency in MHz to a Wi-Fi channel number.

    Parameters
    ----------
    freq_mhz : int, optional
        Frequency in MHz.

    Returns
    -------
    Optional[int]
        Channel number, or None outside the 2.4 GHz (1-14) and 5 GHz (36-165) tables.
    """
    if freq_mhz is None:
        return None
    return FREQ_TO_CHANNEL.get(freq_mhz)


def parse_ssid(body: bytes) -> Optional[str]:
    """
    Return the first non-empty, UTF-8 SSID element of a management frame body.

    Empty (hidden) SSID elements are skipped; an undecodable one ends the search.
    """
    if len(body) < FIXED_PARAMS_LEN:
        return None
    for tag, payload in iter_elements(body, FIXED_PARAMS_LEN):
        if tag != TAG_SSID or not payload:
            continue
        try:
            ssid = payload.decode("utf-8")
        except UnicodeDecodeError:
            return None
        return ssid or None
    return None


class DecodeStats(Counter):
    """
    Per-reason tally of decoded and dropped capture records.

    Keys: ``decoded``, ``radiotap``, ``truncated``, ``frame_type``, ``link_type``.
    """

    @property
    def dropped(self) -> int:
        return sum(v for k, v in self.items() if k != "decoded")


def decode_frame(
    data: bytes, timestamp: float, stats: Optional[DecodeStats] = None
) -> Optional[Packet]:
    """
    Decode one radiotap + 802.11 capture record.

    Parameters
    ----------
    data
        Raw record bytes, radiotap header first.
    timestamp
        Capture time in seconds since epoch.
    stats
        Optional counter updated with the outcome.

    Returns
    -------
    Optional[Packet]
        None for malformed records and for frames that carry no AP address.
    """
    stats = stats if stats is not None else DecodeStats()

    try:
        rt = parse_radiotap(data)
    except RadiotapError as e:
        logger.debug("Dropping record: %s", e)
        stats["radiotap"] += 1
        return None

    frame = data[rt.length:]
    if rt.has_fcs and len(frame) >= DOT11_HEADER_LEN + FCS_LEN:
        frame = frame[:-FCS_LEN]
    if len(frame) < DOT11_HEADER_LEN:
        stats["truncated"] += 1
        return None

    (fc,) = struct.unpack_from("<H", frame, 0)
    frame_type = (fc >> 2) & 0x03
    subtype = (fc >> 4) & 0x0F
    to_ds = (fc >> 8) & 0x01
    from_ds = (fc >> 9) & 0x01

    ssid = None
    security = None
    if frame_type == TYPE_MGMT:
        if subtype in (SUBTYPE_BEACON, SUBTYPE_PROBE_RESP):
            ap_mac = bytes(frame[10:16])
            if len(frame) >= CAPABILITY_OFFSET + 2:
                (capabilities,) = struct.unpack_from("<H", frame, CAPABILITY_OFFSET)
                body = frame[DOT11_HEADER_LEN:]
                security = classify_security(body, capabilities)
                ssid = parse_ssid(body)
        elif subtype in (SUBTYPE_ASSOC_RESP, SUBTYPE_REASSOC_RESP):
            ap_mac = bytes(frame[10:16])
        else:
            logger.debug("Unhandled management subtype: %d", subtype)
            stats["frame_type"] += 1
            return None
    elif frame_type == TYPE_DATA:
        addr = DATA_AP_ADDRESS.get((to_ds, from_ds))
        if addr is None:
            # WDS (to_ds=1, from_ds=1) has no single BSSID
            stats["frame_type"] += 1
            return None
        ap_mac = bytes(frame[addr])
    else:
        stats["frame_type"] += 1
        return None

    stats["decoded"] += 1
    return Packet(
        timestamp=timestamp,
        source_address=ap_mac,
        ssid=ssid,
        signal_strength=rt.antenna_signal,
        channel=frequency_to_channel(rt.channel_freq),
        security=security,
    )
