"""Shared test fixtures: radiotap/802.11 frame and pcapng builders."""

import struct

import pytest
from mac_vendor_lookup import VendorNotFoundError

from hcxmap.analysis.types import Observation, Position
from hcxmap.utils import mac
from hcxmap.utils.geo import rssi_to_distance

AP_MAC = bytes.fromhex("a0b1c2d3e4f5")
CLIENT_MAC = bytes.fromhex("101112131415")
BROADCAST = b"\xff" * 6


def radiotap(signal: int | None = -42, freq: int | None = 2437, flags: int | None = 0) -> bytes:
    """Radiotap header with flags, channel and antenna signal fields."""
    present = 0
    fields = b""
    if flags is not None:
        present |= 1 << 1
        fields += bytes([flags])
    if freq is not None:
        present |= 1 << 3
        # channel is 2-byte aligned relative to the header start
        if (8 + len(fields)) % 2:
            fields += b"\x00"
        fields += struct.pack("<HH", freq, 0x00A0)
    if signal is not None:
        present |= 1 << 5
        fields += struct.pack("<b", signal)
    return struct.pack("<BBHI", 0, 0, 8 + len(fields), present) + fields


def element(tag: int, payload: bytes) -> bytes:
    return bytes([tag, len(payload)]) + payload


def rsn_element(akms: list[int]) -> bytes:
    payload = (
        b"\x01\x00"              # version
        + b"\x00\x0f\xac\x04"    # group cipher CCMP
        + b"\x01\x00"            # pairwise count
        + b"\x00\x0f\xac\x04"    # pairwise CCMP
        + struct.pack("<H", len(akms))
        + b"".join(b"\x00\x0f\xac" + bytes([a]) for a in akms)
        + b"\x00\x00"            # RSN capabilities
    )
    return element(48, payload)


def wpa_element() -> bytes:
    payload = (
        b"\x00\x50\xf2\x01"      # WPA OUI + type
        + b"\x01\x00"            # version
        + b"\x00\x50\xf2\x02"    # group cipher TKIP
    )
    return element(221, payload)


def mgmt_frame(subtype: int, bssid: bytes = AP_MAC, capabilities: int = 0x0411, elements: bytes = b"") -> bytes:
    """802.11 management frame: header + fixed parameters + elements."""
    fc = struct.pack("<H", subtype << 4)
    header = fc + b"\x00\x00" + BROADCAST + bssid + bssid + b"\x00\x00"
    fixed = b"\x00" * 8 + struct.pack("<H", 100) + struct.pack("<H", capabilities)
    return header + fixed + elements


def beacon(ssid: str | bytes = "HomeNet", capabilities: int = 0x0411, extra: bytes = b"", bssid: bytes = AP_MAC) -> bytes:
    raw = ssid.encode() if isinstance(ssid, str) else ssid
    return mgmt_frame(8, bssid, capabilities, element(0, raw) + extra)


def data_frame(to_ds: int, from_ds: int, addr1: bytes, addr2: bytes, addr3: bytes) -> bytes:
    fc = struct.pack("<H", (2 << 2) | (to_ds << 8) | (from_ds << 9))
    return fc + b"\x00\x00" + addr1 + addr2 + addr3 + b"\x00\x00" + b"payload"


def _block(block_type: int, body: bytes) -> bytes:
    total = 12 + len(body)
    return struct.pack("<II", block_type, total) + body + struct.pack("<I", total)


def pcapng_bytes(records: list[tuple[bytes, float]], linktype: int = 127) -> bytes:
    """Minimal little-endian pcapng: SHB, one IDB, one EPB per record (microsecond stamps)."""
    shb = _block(0x0A0D0D0A, struct.pack("<IHHq", 0x1A2B3C4D, 1, 0, -1))
    idb = _block(0x00000001, struct.pack("<HHI", linktype, 0, 65535))
    out = shb + idb
    for data, ts in records:
        micros = int(round(ts * 1_000_000))
        pad = b"\x00" * (-len(data) % 4)
        body = struct.pack("<IIIII", 0, micros >> 32, micros & 0xFFFFFFFF, len(data), len(data))
        out += _block(0x00000006, body + data + pad)
    return out


def obs(lat: float, lon: float, rssi: int, ts: int = 0) -> Observation:
    return Observation(Position(lat, lon, ts), rssi, rssi_to_distance(rssi))


@pytest.fixture
def workdir(tmp_path):
    """Working directory with one GPS track and one capture of a single AP."""
    base = 1_700_000_000
    (tmp_path / "walk.nmea").write_text(
        "\n".join(
            [
                nmea_sentence("GPRMC,221320,A,4807.000,N,01131.000,E,0.0,0.0,141123,,"),
                nmea_sentence("GPRMC,221330,A,4807.020,N,01131.000,E,0.0,0.0,141123,,"),
                nmea_sentence("GPRMC,221340,A,4807.020,N,01131.030,E,0.0,0.0,141123,,"),
            ]
        )
        + "\n"
    )
    frames = [
        (radiotap(signal=-40) + beacon("CafeWiFi", capabilities=0x0401), base + 0.5),
        (radiotap(signal=-50) + beacon("CafeWiFi", capabilities=0x0401), base + 10.2),
        (radiotap(signal=-60) + beacon("CafeWiFi", capabilities=0x0401), base + 20.9),
    ]
    (tmp_path / "walk.pcapng").write_bytes(pcapng_bytes(frames))
    return tmp_path


def nmea_sentence(body: str) -> str:
    """Wrap a sentence body with ``$`` and its XOR checksum."""
    checksum = 0
    for ch in body:
        checksum ^= ord(ch)
    return f"${body}*{checksum:02X}"


OUI_VENDORS = {
    "A0:B1:C2": "Cafe Networks",
    "B8:27:EB": "Raspberry Pi Foundation",
}


class FakeMacLookup:
    """Offline stand-in for the OUI database, keyed by upper-case prefix."""

    def lookup(self, address: str) -> str:
        try:
            return OUI_VENDORS[address[:8]]
        except KeyError:
            raise VendorNotFoundError(address) from None


@pytest.fixture(autouse=True)
def offline_vendors(monkeypatch):
    monkeypatch.setattr(mac, "_mac_lookup", FakeMacLookup())
