"""Stored record layout: ``[8-byte varint expiry (Unix ms)][payload]``.

The expiry is an absolute deadline written with the signed zig-zag LEB128
varint scheme (wire-compatible with Go's ``binary.PutVarint``). It always
occupies an 8-byte slot regardless of how many bytes the varint needs; unused
slot bytes are zero. The payload is everything after the slot, verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fcache.domain.errors import MalformedRecord
from fcache.infrastructure.clock import TTL, now_millis, to_millis

SLOT_SIZE = 8
MAX_VARINT_LEN64 = 10

# 8 bytes of 7-bit groups hold 56 bits of zig-zag encoded value.
MAX_EXPIRY = (1 << 55) - 1
MIN_EXPIRY = -(1 << 55)

_UINT64_MASK = (1 << 64) - 1


@dataclass(frozen=True)
class Record:
    expiry_millis: int
    payload: bytes

    def remaining_millis(self, now_ms: int) -> int:
        return self.expiry_millis - now_ms

    def is_expired(self, now_ms: int) -> bool:
        # A record is still visible at its exact deadline.
        return self.remaining_millis(now_ms) < 0


def encode_varint(value: int) -> bytes:
    """Encode a signed 64-bit integer as a zig-zag LEB128 varint."""
    ux = (value << 1) & _UINT64_MASK
    if value < 0:
        ux ^= _UINT64_MASK
    out = bytearray()
    while ux >= 0x80:
        out.append((ux & 0x7F) | 0x80)
        ux >>= 7
    out.append(ux)
    return bytes(out)


def decode_varint(buf: bytes) -> tuple[int, int]:
    """Decode a signed varint from the start of ``buf``.

    Returns ``(value, n)``. ``n > 0`` is the number of bytes read, ``n == 0``
    means the buffer ended first and ``n < 0`` means the value overflows 64
    bits after ``-n`` bytes.
    """
    ux = 0
    shift = 0
    for i, b in enumerate(buf):
        if i == MAX_VARINT_LEN64:
            return 0, -(i + 1)
        if b < 0x80:
            if i == MAX_VARINT_LEN64 - 1 and b > 1:
                return 0, -(i + 1)
            ux |= b << shift
            x = ux >> 1
            if ux & 1:
                x = ~x
            return x, i + 1
        ux |= (b & 0x7F) << shift
        shift += 7
    return 0, 0


def encode(ttl: TTL, payload: bytes, now_ms: Optional[int] = None) -> bytes:
    """Pack ``payload`` with a deadline of ``now + ttl``."""
    if now_ms is None:
        now_ms = now_millis()
    expiry = min(max(now_ms + to_millis(ttl), MIN_EXPIRY), MAX_EXPIRY)
    slot = encode_varint(expiry).ljust(SLOT_SIZE, b"\x00")
    return slot + bytes(payload)


def decode(raw: bytes) -> Record:
    if len(raw) < SLOT_SIZE:
        raise MalformedRecord(
            f"record too short: {len(raw)} bytes, need at least {SLOT_SIZE}",
            context={"length": len(raw)},
        )
    expiry, n = decode_varint(raw[:SLOT_SIZE])
    if n == 0:
        raise MalformedRecord("expiry slot too small for its varint", context={"length": len(raw)})
    if n < 0:
        raise MalformedRecord(
            "expiry varint overflows 64 bits", context={"length": len(raw), "bytes_read": -n}
        )
    return Record(expiry_millis=expiry, payload=bytes(raw[SLOT_SIZE:]))
