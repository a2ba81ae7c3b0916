"""
NMEA parser: build GPS fixes from the `.nmea` track logs of a working directory.
"""

import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import pynmea2

from hcxmap.analysis.types import Position
from hcxmap.utils.fs import list_files
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)

TRACK_SUFFIX = ".nmea"


@dataclass
class FixState:
    """
    Last known fix components, accumulated across sentences.

    RMC carries date, time and position; ZDA carries the date; GGA/GLL carry
    time and position only, so a date seen earlier in the stream is reused.
    """
    fix_date: Optional[dt.date] = None
    fix_time: Optional[dt.time] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def update(self, msg: pynmea2.NMEASentence) -> bool:
        """
        Fold one parsed sentence into the state.

        Returns True when the sentence carried a valid position.

        Raises
        ------
        ValueError
            For a malformed date, time or coordinate field; the state is
            left untouched.
        """
        fix_date = self._sentence_date(msg)
        has_fix = bool(getattr(msg, "lat", None)) and bool(getattr(msg, "lon", None))
        # RMC/GLL status V and GGA quality 0 mean no fix
        if getattr(msg, "status", "A") == "V" or getattr(msg, "gps_qual", 1) == 0:
            has_fix = False
        if has_fix:
            timestamp = getattr(msg, "timestamp", None)
            latitude, longitude = msg.latitude, msg.longitude

        if fix_date is not None:
            self.fix_date = fix_date
        if not has_fix:
            return False
        if isinstance(timestamp, dt.time):
            self.fix_time = timestamp
        self.latitude, self.longitude = latitude, longitude
        return True

    @staticmethod
    def _sentence_date(msg: pynmea2.NMEASentence) -> Optional[dt.date]:
        datestamp = getattr(msg, "datestamp", None)
        if isinstance(datestamp, dt.date):
            return datestamp
        if getattr(msg, "sentence_type", None) == "ZDA":
            try:
                return dt.date(int(msg.year), int(msg.month), int(msg.day))
            except TypeError:
                # blank ZDA fields
                return None
        return None

    def position(self) -> Optional[Position]:
        if None in (self.fix_date, self.fix_time, self.latitude, self.longitude):
            return None
        when = dt.datetime.combine(self.fix_date, self.fix_time.replace(tzinfo=None))
        return Position(
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=int(when.replace(tzinfo=dt.timezone.utc).timestamp()),
        )


def parse_lines(lines: Iterable[str], state: Optional[FixState] = None) -> Iterator[Position]:
    """
    Yield a Position for every position-bearing sentence once date, time,
    latitude and longitude are all known. Unparseable lines and lines
    with malformed fields are skipped.
    """
    state = state if state is not None else FixState()
    for line in lines:
        line = line.strip()
        # gpsd JSON reports interleaved with the sentences
        if not line or line.startswith("{"):
            continue
        try:
            msg = pynmea2.parse(line)
        except pynmea2.ParseError as e:
            logger.debug("Skipping NMEA line %r: %s", line, e)
            continue
        try:
            if not state.update(msg):
                continue
        except ValueError as e:
            logger.debug("Skipping malformed NMEA line %r: %s", line, e)
            continue
        pos = state.position()
        if pos is not None:
            yield pos


def read_track_file(file_path: Path) -> List[Position]:
    """
    Parse one `.nmea` file; an unreadable file contributes no fixes.
    """
    logger.debug("Reading NMEA file: %s", file_path)
    try:
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            return list(parse_lines(f))
    except OSError as e:
        logger.error("Cannot read track file %s: %s", file_path, e)
        return []


def get_positions(workdir: Path) -> List[Position]:
    """
    Collect the fixes of every `.nmea` file in `workdir`, sorted by time.
    """
    positions: List[Position] = []
    for file_path in list_files(workdir, TRACK_SUFFIX):
        positions.extend(read_track_file(file_path))
    positions.sort(key=lambda p: p.timestamp)
    return positions
