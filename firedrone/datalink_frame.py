"""Framing of datalink messages: sync bytes, header and Fletcher checksums."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass

SYNC = (0xA3, 0xB2, 0xC1)

_HEADER_FORMAT = "<4BiiII"
HEADER_SIZE = struct.calcsize(_HEADER_FORMAT)
# The header checksum covers everything before the two checksum fields.
_HEADER_CHECKED = HEADER_SIZE - 2 * 4

_MAX_BLOCK = 360
_MASK16 = 0xFFFF
_MASK32 = 0xFFFFFFFF


def fletcher_checksum(data: bytes) -> int:
    """Return the Fletcher-32 checksum used on the datalink.

    Words are little-endian; an odd trailing byte counts as if a zero byte
    followed it. A buffer of a single byte has no whole word and checksums
    like an empty one.
    """
    data = bytes(data)
    sum1 = sum2 = _MASK16
    word_count = len(data) // 2
    odd = len(data) % 2 == 1
    position = 0

    while word_count:
        block = min(word_count, _MAX_BLOCK)
        word_count -= block
        for _ in range(block):
            sum1 = (sum1 + data[position] + (data[position + 1] << 8)) & _MASK32
            sum2 = (sum2 + sum1) & _MASK32
            position += 2
        if odd and word_count < 1:
            sum1 = (sum1 + data[position]) & _MASK32
            sum2 = (sum2 + sum1) & _MASK32
            position += 1
        sum1 = (sum1 & _MASK16) + (sum1 >> 16)
        sum2 = (sum2 & _MASK16) + (sum2 >> 16)

    sum1 = (sum1 & _MASK16) + (sum1 >> 16)
    sum2 = (sum2 & _MASK16) + (sum2 >> 16)
    return ((sum2 << 16) | sum1) & _MASK32


@dataclass
class Header:
    """The fixed header that starts every datalink message."""

    message_id: int = 0
    message_size: int = 0
    hcsum: int = 0
    csum: int = 0
    sync1: int = SYNC[0]
    sync2: int = SYNC[1]
    sync3: int = SYNC[2]
    spare: int = 0

    def pack(self) -> bytes:
        """Return the header's wire bytes."""
        return struct.pack(
            _HEADER_FORMAT,
            self.sync1,
            self.sync2,
            self.sync3,
            self.spare,
            self.message_id,
            self.message_size,
            self.hcsum,
            self.csum,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Header:
        """Decode a header from the first HEADER_SIZE bytes of ``data``."""
        if len(data) < HEADER_SIZE:
            raise ValueError(f"header needs {HEADER_SIZE} bytes, got {len(data)}")
        sync1, sync2, sync3, spare, message_id, size, hcsum, csum = struct.unpack_from(
            _HEADER_FORMAT, bytes(data[:HEADER_SIZE])
        )
        return cls(
            message_id=message_id,
            message_size=size,
            hcsum=hcsum,
            csum=csum,
            sync1=sync1,
            sync2=sync2,
            sync3=sync3,
            spare=spare,
        )


@dataclass
class FrameStats:
    """Counters kept while scanning received buffers.

    ``buffer_size`` is the receive buffer capacity; messages that claim to be
    at least that long are rejected like a bad header. None means no limit.
    """

    itime: int = 0
    bad_checksums: int = 0
    bad_header_checksums: int = 0
    buffer_size: int | None = None


def encode_message(message_id: int, payload: bytes) -> bytes:
    """Return a complete message: header with sync bytes and checksums, then payload."""
    payload = bytes(payload)
    header = Header(message_id=message_id, message_size=HEADER_SIZE + len(payload))
    header.hcsum = fletcher_checksum(header.pack()[:_HEADER_CHECKED])
    header.csum = fletcher_checksum(payload)
    return header.pack() + payload


def _starts_with_sync(buffer: bytes, index: int) -> bool:
    return tuple(buffer[index:index + 3]) == SYNC


def iter_frames(buffer: bytes, stats: FrameStats | None) -> Iterator[tuple[Header, bytes]]:
    """Yield ``(header, payload)`` for every message in ``buffer`` with good checksums.

    Bytes before a sync sequence are skipped. A message cut off by the end of
    the buffer stops the scan. ``stats`` is updated as the scan proceeds.
    """
    buffer = bytes(buffer)
    stats = stats if stats is not None else FrameStats()
    length = len(buffer)
    index = 0

    while index <= length - HEADER_SIZE:
        if _starts_with_sync(buffer, index):
            header = Header.unpack(buffer[index:index + HEADER_SIZE])
            size = header.message_size
            header_ok = (
                fletcher_checksum(buffer[index:index + _HEADER_CHECKED]) == header.hcsum
                and size >= HEADER_SIZE
                and (stats.buffer_size is None or size < stats.buffer_size)
            )
            if not header_ok:
                stats.bad_header_checksums += 1
                index += HEADER_SIZE
                continue
            if index + size > length:
                return
            payload = buffer[index + HEADER_SIZE:index + size]
            index += size
            if fletcher_checksum(payload) == header.csum:
                stats.itime += 1
                yield header, payload
            else:
                stats.bad_checksums += 1
            continue
        index += 1