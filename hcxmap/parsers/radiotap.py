"""
Radiotap header decoding on top of scapy's `RadioTap` dissector.

Only what the locator needs is kept: the header length (where the 802.11
frame starts), the flags byte, the channel and the first antenna's signal.
"""

import struct
from dataclasses import dataclass
from typing import Optional

from scapy.error import Scapy_Exception
from scapy.layers.dot11 import RadioTap

HEADER_MIN_LEN = 8
FLAG_FCS_AT_END = 0x10


class RadiotapError(ValueError):
    """Raised for a radiotap header that cannot be decoded."""


@dataclass
class RadiotapHeader:
    """
    Decoded subset of a radiotap header.

    Parameters
    ----------
    length : int
        Declared header length; the 802.11 frame starts at this offset.
    flags : int, optional
        Radiotap flags byte.
    channel_freq : int, optional
        Channel centre frequency in MHz.
    antenna_signal : int, optional
        Signal strength in dBm (signed).
    """
    length: int
    flags: Optional[int] = None
    channel_freq: Optional[int] = None
    antenna_signal: Optional[int] = None

    @property
    def has_fcs(self) -> bool:
        return self.flags is not None and bool(self.flags & FLAG_FCS_AT_END)


def _dissected(rt: RadioTap, name: str) -> Optional[int]:
    # absent fields fall back to scapy defaults (0), so only trust dissected ones
    value = rt.fields.get(name)
    return None if value is None else int(value)


def parse_radiotap(data: bytes) -> RadiotapHeader:
    """
    Dissect the radiotap header at the start of `data`.

    Raises
    ------
    RadiotapError
        When scapy cannot dissect the record, or on a bad version or a
        declared length outside ``[8, len(data)]``.
    """
    if len(data) < HEADER_MIN_LEN:
        raise RadiotapError(f"header too short ({len(data)} bytes)")

    version, _pad, length = struct.unpack_from("<BBH", data, 0)
    if version != 0:
        raise RadiotapError(f"unsupported radiotap version {version}")
    if length < HEADER_MIN_LEN or length > len(data):
        raise RadiotapError(f"bad radiotap length {length} for {len(data)} bytes")

    # header bytes only: a field running past the declared length fails to dissect
    try:
        rt = RadioTap(data[:length])
    except (Scapy_Exception, struct.error, IndexError, ValueError) as e:
        raise RadiotapError(f"undecodable radiotap header: {e}") from e

    return RadiotapHeader(
        length=length,
        flags=_dissected(rt, "Flags"),
        channel_freq=_dissected(rt, "ChannelFrequency"),
        antenna_signal=_dissected(rt, "dBm_AntSignal"),
    )
