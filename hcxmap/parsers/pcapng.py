"""
pcapng reader: discover capture files in a working directory and decode the
radiotap/802.11 enhanced packet blocks they contain.
"""

import struct
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from scapy.error import Scapy_Exception
from scapy.utils import RawPcapNgReader

from hcxmap.analysis.types import Packet
from hcxmap.parsers.dot11 import DecodeStats, decode_frame
from hcxmap.utils.fs import list_files
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)

CAPTURE_SUFFIX = ".pcapng"
LINKTYPE_IEEE802_11_RADIOTAP = 127


def iter_records(file_path: Path, stats: Optional[DecodeStats] = None) -> Iterator[Tuple[bytes, float]]:
    """
    Yield ``(data, timestamp)`` for each radiotap enhanced packet block.

    Records from other link types and simple packet blocks (no timestamp)
    are skipped. A corrupt block stream ends the file.
    """
    stats = stats if stats is not None else DecodeStats()
    with RawPcapNgReader(str(file_path)) as reader:
        # scapy falls back to a legacy pcap reader on a non-pcapng magic
        if not isinstance(reader, RawPcapNgReader):
            logger.error("Not a pcapng capture file: %s", file_path)
            return
        try:
            for data, meta in reader:
                if meta.linktype != LINKTYPE_IEEE802_11_RADIOTAP or meta.tshigh is None:
                    stats["link_type"] += 1
                    continue
                yield data, ((meta.tshigh << 32) | meta.tslow) / meta.tsresol
        except (Scapy_Exception, struct.error) as e:
            logger.error("Error reading block in %s: %s", file_path, e)


def read_capture(file_path: Path, stats: Optional[DecodeStats] = None) -> List[Packet]:
    """
    Decode every usable record of one pcapng file.

    Parameters
    ----------
    file_path
        Path to a `.pcapng` file.
    stats
        Optional counter updated with per-record outcomes.

    Returns
    -------
    List[Packet]
        Decoded packets; empty if the file cannot be opened.
    """
    stats = stats if stats is not None else DecodeStats()
    packets: List[Packet] = []
    logger.debug("Reading pcapng file: %s", file_path)
    try:
        for data, ts in iter_records(file_path, stats):
            packet = decode_frame(data, ts, stats)
            if packet is not None:
                packets.append(packet)
    except (OSError, Scapy_Exception) as e:
        logger.error("Cannot read capture file %s: %s", file_path, e)
    return packets


def get_packets(workdir: Path) -> Tuple[List[Packet], DecodeStats]:
    """
    Decode all `.pcapng` files of the working directory, in path order.
    """
    stats = DecodeStats()
    packets: List[Packet] = []
    for file_path in list_files(workdir, CAPTURE_SUFFIX):
        packets.extend(read_capture(file_path, stats))
    logger.info(
        "Decoded %d packets, dropped %d records (%s)",
        stats["decoded"],
        stats.dropped,
        ", ".join(f"{k}={v}" for k, v in sorted(stats.items()) if k != "decoded") or "none",
    )
    return packets, stats
