"""Tests for packet to access-point aggregation."""

import pytest

from hcxmap.analysis.aggregate import AggregateStats, aggregate
from hcxmap.analysis.config import LocatorConfig
from hcxmap.analysis.track import PositionTrack
from hcxmap.analysis.types import Packet, Position, merge_optional
from hcxmap.parsers.security import SecurityKind
from hcxmap.utils.geo import rssi_to_distance

MAC_A = bytes.fromhex("aaaaaaaaaaaa")
MAC_B = bytes.fromhex("bbbbbbbbbbbb")


@pytest.fixture
def track() -> PositionTrack:
    return PositionTrack([Position(48.0, 11.0, 100), Position(48.001, 11.001, 110)])


class TestMergeOptional:
    def test_keeps_current(self):
        assert merge_optional("a", "b") == "a"

    def test_fills_unset(self):
        assert merge_optional(None, "b") == "b"

    def test_never_downgrades(self):
        assert merge_optional("a", None) == "a"

    def test_falsy_value_is_a_value(self):
        assert merge_optional(0, 5) == 0


class TestAggregate:
    def test_groups_by_mac(self, track):
        packets = [
            Packet(100.0, MAC_A, "Alpha", -50, 6, SecurityKind.WPA2),
            Packet(105.0, MAC_B, "Bravo", -70, 1, SecurityKind.OPEN),
            Packet(110.0, MAC_A, None, -60, 6, None),
        ]
        aps, stats = aggregate(packets, track)
        assert list(aps) == [MAC_A, MAC_B]
        assert len(aps[MAC_A].observations) == 2
        assert len(aps[MAC_B].observations) == 1
        assert stats["used"] == 3
        assert stats.dropped == 0

    def test_observation_position_and_distance(self, track):
        aps, _ = aggregate([Packet(105.0, MAC_A, None, -60)], track)
        o = aps[MAC_A].observations[0]
        assert o.position.latitude == pytest.approx(48.0005)
        assert o.position.timestamp == 105
        assert o.signal_strength == -60
        assert o.distance == pytest.approx(rssi_to_distance(-60))

    def test_config_drives_path_loss(self, track):
        cfg = LocatorConfig(rssi_at_1m=-40.0, path_loss_exponent=2.0)
        aps, _ = aggregate([Packet(105.0, MAC_A, None, -60)], track, cfg)
        assert aps[MAC_A].observations[0].distance == pytest.approx(10.0)

    def test_backfills_ssid_and_security(self, track):
        packets = [
            Packet(100.0, MAC_A, None, -50, None, None),
            Packet(101.0, MAC_A, "Alpha", -50, 11, SecurityKind.WPA3),
            Packet(102.0, MAC_A, "Other", -50, 1, SecurityKind.WEP),
            Packet(103.0, MAC_A, None, -50, None, None),
        ]
        aps, _ = aggregate(packets, track)
        ap = aps[MAC_A]
        assert ap.ssid == "Alpha"
        assert ap.security == SecurityKind.WPA3
        assert ap.channel == 11

    def test_drops_unusable_packets(self, track):
        packets = [
            Packet(100.0, None, "NoAddr", -50),
            Packet(100.0, MAC_A, "NoSignal", None),
            Packet(50.0, MAC_A, "TooEarly", -50),
            Packet(500.0, MAC_A, "TooLate", -50),
        ]
        aps, stats = aggregate(packets, track)
        assert aps == {}
        assert stats["no_address"] == 1
        assert stats["no_signal"] == 1
        assert stats["no_position"] == 2
        assert isinstance(stats, AggregateStats)
        assert stats.dropped == 4
        assert stats["used"] == 0

    def test_empty_track_drops_everything(self):
        aps, stats = aggregate([Packet(100.0, MAC_A, None, -50)], PositionTrack())
        assert aps == {}
        assert stats["no_position"] == 1

    def test_observations_independent_of_packet_order(self, track):
        packets = [Packet(100.0 + i, MAC_A, None, -40 - i) for i in range(10)]
        forward, _ = aggregate(packets, track)
        backward, _ = aggregate(list(reversed(packets)), track)
        key = lambda o: (o.position.timestamp, o.signal_strength)
        assert sorted(forward[MAC_A].observations, key=key) == sorted(backward[MAC_A].observations, key=key)
