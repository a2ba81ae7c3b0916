"""
802.11 tagged information element walking.
"""

from typing import Iterator, Tuple

TAG_SSID = 0
TAG_RSN = 48
TAG_VENDOR = 221


def iter_elements(buf: bytes, offset: int = 0) -> Iterator[Tuple[int, bytes]]:
    """
    Yield ``(tag_number, payload)`` for each length-prefixed element in `buf`,
    starting at `offset`.

    Iteration ends quietly when fewer than two header bytes remain or when an
    element's declared length runs past the end of the buffer; a truncated
    trailing element is treated as the end of the element list.
    """
    end = len(buf)
    while offset + 2 <= end:
        tag = buf[offset]
        length = buf[offset + 1]
        start = offset + 2
        if start + length > end:
            return
        yield tag, buf[start:start + length]
        offset = start + length
