"""Tests for radiotap parsing and 802.11 frame decoding."""

import struct

import pytest
from scapy.layers.dot11 import RadioTap

from hcxmap.parsers.dot11 import DecodeStats, decode_frame, frequency_to_channel, parse_ssid
from hcxmap.parsers.elements import iter_elements
from hcxmap.parsers.radiotap import RadiotapError, parse_radiotap
from hcxmap.parsers.security import SecurityKind

from conftest import (
    AP_MAC,
    BROADCAST,
    CLIENT_MAC,
    beacon,
    data_frame,
    element,
    mgmt_frame,
    radiotap,
    rsn_element,
)

OTHER_MAC = bytes.fromhex("020304050607")


class TestRadiotap:
    def test_signal_channel_and_flags(self):
        hdr = parse_radiotap(radiotap(signal=-67, freq=5180, flags=0x02) + b"rest")
        assert hdr.length == 15
        assert hdr.antenna_signal == -67
        assert hdr.channel_freq == 5180
        assert hdr.flags == 0x02
        assert not hdr.has_fcs

    def test_missing_optional_fields(self):
        hdr = parse_radiotap(radiotap(signal=None, freq=None, flags=None))
        assert hdr.length == 8
        assert hdr.antenna_signal is None
        assert hdr.channel_freq is None

    def test_tsft_alignment_and_extended_bitmap(self):
        # two presence words push TSFT to offset 16 (8-byte aligned)
        present0 = (1 << 0) | (1 << 5) | (1 << 31)
        present1 = 0
        body = struct.pack("<I", present1) + b"\x00" * 4 + struct.pack("<Q", 123456) + struct.pack("<b", -55)
        data = struct.pack("<BBHI", 0, 0, 8 + len(body), present0) + body
        hdr = parse_radiotap(data)
        assert hdr.length == 25
        assert hdr.antenna_signal == -55

    def test_bad_version(self):
        data = bytearray(radiotap())
        data[0] = 1
        with pytest.raises(RadiotapError):
            parse_radiotap(bytes(data))

    def test_length_beyond_data(self):
        with pytest.raises(RadiotapError):
            parse_radiotap(struct.pack("<BBHI", 0, 0, 64, 0))

    def test_field_overruns_declared_length(self):
        # antenna signal announced but header length leaves no room for it
        with pytest.raises(RadiotapError):
            parse_radiotap(struct.pack("<BBHI", 0, 0, 8, 1 << 5) + b"\xc0")

    def test_too_short(self):
        with pytest.raises(RadiotapError):
            parse_radiotap(b"\x00\x00\x08")

    def test_fcs_flag(self):
        assert parse_radiotap(radiotap(flags=0x10)).has_fcs

    def test_matches_scapy_dissection(self):
        data = radiotap(signal=-71, freq=2462, flags=0x02) + beacon()
        rt = RadioTap(data)
        hdr = parse_radiotap(data)
        assert hdr.length == rt.len
        assert hdr.antenna_signal == rt.dBm_AntSignal
        assert hdr.channel_freq == rt.ChannelFrequency


class TestFrequencyToChannel:
    @pytest.mark.parametrize(
        "freq, channel",
        [(2412, 1), (2437, 6), (2472, 13), (2484, 14), (5180, 36), (5320, 64),
         (5500, 100), (5700, 140), (5745, 149), (5825, 165)],
    )
    def test_known(self, freq, channel):
        assert frequency_to_channel(freq) == channel

    @pytest.mark.parametrize("freq", [None, 2400, 2413, 5170, 5340, 5720, 5845, 5955])
    def test_unmapped(self, freq):
        assert frequency_to_channel(freq) is None


class TestIterElements:
    def test_walks_all_elements(self):
        buf = element(0, b"abc") + element(3, b"\x06") + element(221, b"")
        assert list(iter_elements(buf)) == [(0, b"abc"), (3, b"\x06"), (221, b"")]

    def test_stops_on_overrun(self):
        buf = element(0, b"abc") + bytes([48, 20]) + b"\x01\x00"
        assert list(iter_elements(buf)) == [(0, b"abc")]

    def test_stops_on_dangling_byte(self):
        assert list(iter_elements(element(1, b"\x82") + b"\x30")) == [(1, b"\x82")]

    def test_offset(self):
        assert list(iter_elements(b"\xff" * 4 + element(7, b"DE"), 4)) == [(7, b"DE")]


class TestParseSsid:
    def test_first_ssid_wins(self):
        body = b"\x00" * 12 + element(1, b"\x82\x84") + element(0, b"First") + element(0, b"Second")
        assert parse_ssid(body) == "First"

    def test_hidden_ssid(self):
        assert parse_ssid(b"\x00" * 12 + element(0, b"")) is None

    def test_invalid_utf8(self):
        assert parse_ssid(b"\x00" * 12 + element(0, b"\xff\xfe")) is None

    def test_short_body(self):
        assert parse_ssid(b"\x00" * 11) is None


class TestDecodeFrame:
    def test_beacon(self):
        data = radiotap(signal=-48, freq=2462) + beacon("HomeNet", capabilities=0x0411, extra=rsn_element([2]))
        pkt = decode_frame(data, 1700000000.25)
        assert pkt.source_address == AP_MAC
        assert pkt.ssid == "HomeNet"
        assert pkt.signal_strength == -48
        assert pkt.channel == 11
        assert pkt.security == SecurityKind.WPA2
        assert pkt.timestamp == 1700000000.25

    def test_beacon_address_from_bytes_10_to_16(self):
        frame = mgmt_frame(8, bssid=OTHER_MAC)
        pkt = decode_frame(radiotap() + frame, 0.0)
        assert pkt.source_address == frame[10:16] == OTHER_MAC

    def test_probe_response(self):
        pkt = decode_frame(radiotap() + mgmt_frame(5, capabilities=0x0001), 0.0)
        assert pkt.source_address == AP_MAC
        assert pkt.security == SecurityKind.OPEN

    @pytest.mark.parametrize("subtype", [1, 3])
    def test_association_responses_carry_no_ssid(self, subtype):
        pkt = decode_frame(radiotap() + mgmt_frame(subtype), 0.0)
        assert pkt.source_address == AP_MAC
        assert pkt.ssid is None
        assert pkt.security is None

    @pytest.mark.parametrize("subtype", [0, 4, 10, 11, 12, 13])
    def test_other_management_subtypes_dropped(self, subtype):
        stats = DecodeStats()
        assert decode_frame(radiotap() + mgmt_frame(subtype), 0.0, stats) is None
        assert stats["frame_type"] == 1

    def test_data_to_ds(self):
        frame = data_frame(1, 0, AP_MAC, CLIENT_MAC, BROADCAST)
        pkt = decode_frame(radiotap() + frame, 0.0)
        assert pkt.source_address == frame[4:10] == AP_MAC

    def test_data_from_ds(self):
        pkt = decode_frame(radiotap() + data_frame(0, 1, CLIENT_MAC, AP_MAC, OTHER_MAC), 0.0)
        assert pkt.source_address == AP_MAC

    def test_data_no_ds(self):
        pkt = decode_frame(radiotap() + data_frame(0, 0, CLIENT_MAC, OTHER_MAC, AP_MAC), 0.0)
        assert pkt.source_address == AP_MAC

    def test_data_wds_dropped(self):
        assert decode_frame(radiotap() + data_frame(1, 1, AP_MAC, CLIENT_MAC, OTHER_MAC), 0.0) is None

    def test_control_frame_dropped(self):
        ack = struct.pack("<H", (1 << 2) | (13 << 4)) + b"\x00" * 22
        assert decode_frame(radiotap() + ack, 0.0) is None

    def test_truncated_80211_header(self):
        stats = DecodeStats()
        assert decode_frame(radiotap() + beacon()[:23], 0.0, stats) is None
        assert stats["truncated"] == 1

    def test_malformed_radiotap(self):
        stats = DecodeStats()
        assert decode_frame(b"\x05\x00\x08\x00" + b"\x00" * 40, 0.0, stats) is None
        assert stats["radiotap"] == 1
        assert stats.dropped == 1

    def test_short_beacon_without_capabilities(self):
        pkt = decode_frame(radiotap() + beacon()[:30], 0.0)
        assert pkt.source_address == AP_MAC
        assert pkt.security is None
        assert pkt.ssid is None

    def test_missing_signal(self):
        pkt = decode_frame(radiotap(signal=None, freq=None) + beacon(), 0.0)
        assert pkt.signal_strength is None
        assert pkt.channel is None

    def test_fcs_stripped(self):
        frame = beacon("Cafe")
        pkt = decode_frame(radiotap(flags=0x10) + frame + b"\xde\xad\xbe\xef", 0.0)
        assert pkt.ssid == "Cafe"

    def test_decoded_counter(self):
        stats = DecodeStats()
        decode_frame(radiotap() + beacon(), 0.0, stats)
        assert stats["decoded"] == 1
        assert stats.dropped == 0
