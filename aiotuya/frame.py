# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Encoding and decoding of Tuya frames

A frame looks like this on the wire (all fields are big-endian 32 bit words)::

    +--------+----------+---------+--------+-------------+-------+--------+
    | prefix | sequence | command | length |   payload   | crc32 | suffix |
    | 0x55aa |          |         |        | length - 8  |       | 0xaa55 |
    +--------+----------+---------+--------+-------------+-------+--------+

where ``length`` counts the payload and the trailer, and the CRC (IEEE
polynomial, as in :func:`zlib.crc32`) is calculated over the header and the
payload.

Frames are self-delimiting, so they can be read from a byte stream without
any further record boundaries: :func:`decode_from` does this for blocking
file-like objects, :func:`read_frame` for asyncio streams, and
:meth:`Frame.decode` for a complete frame that is already in memory (as it is
in UDP datagrams).
"""

import asyncio
import struct
import zlib
from collections import namedtuple

from . import error
from .numbers import (
    Command,
    PREFIX,
    SUFFIX,
    HEADER_SIZE,
    TRAILER_SIZE,
    MAX_PAYLOAD_SIZE,
)

_HEADER = struct.Struct(">IIII")
_TRAILER = struct.Struct(">II")

assert _HEADER.size == HEADER_SIZE and _TRAILER.size == TRAILER_SIZE


class Frame(namedtuple("_Frame", ("sequence", "command", "payload"))):
    """A single protocol frame with its sequence and command number parsed
    out

    Frames are values: two frames are equal if all their fields are. The
    command is always represented as a :class:`.numbers.Command`, which
    accepts unknown numbers as well.

    >>> Frame(1, 0x0a, b'{}')
    <Frame #1 GET_STATE, 2 byte(s) payload>
    """

    __slots__ = ()

    def __new__(cls, sequence, command, payload=b""):
        return super().__new__(cls, sequence, Command(command), payload)

    def __repr__(self):
        return "<%s #%d %s, %d byte(s) payload>" % (
            type(self).__name__,
            self.sequence,
            self.command,
            len(self.payload),
        )

    def encode(self) -> bytes:
        """Serialize the frame into its wire format"""
        if len(self.payload) > MAX_PAYLOAD_SIZE:
            raise error.SizeError(
                "Payload too large; %d > %d" % (len(self.payload), MAX_PAYLOAD_SIZE)
            )

        header = _HEADER.pack(
            PREFIX,
            self.sequence,
            self.command,
            len(self.payload) + TRAILER_SIZE,
        )
        crc = zlib.crc32(self.payload, zlib.crc32(header))
        return b"".join((header, self.payload, _TRAILER.pack(crc, SUFFIX)))

    @classmethod
    def decode(cls, data):
        """Decode a frame from a byte string that contains exactly that
        frame"""
        data = memoryview(data)
        if len(data) < HEADER_SIZE + TRAILER_SIZE:
            raise error.FramingError("Truncated frame (%d bytes)" % len(data))

        header = data[:HEADER_SIZE]
        sequence, command, payload_size = _parse_header(header)

        end = HEADER_SIZE + payload_size
        if len(data) < end + TRAILER_SIZE:
            raise error.FramingError(
                "Truncated frame (%d of %d bytes)" % (len(data), end + TRAILER_SIZE)
            )
        if len(data) > end + TRAILER_SIZE:
            raise error.FramingError(
                "%d bytes of trailing data after frame" % (len(data) - end - TRAILER_SIZE)
            )

        payload = data[HEADER_SIZE:end]
        _check_trailer(header, payload, data[end:])

        return cls(sequence, command, bytes(payload))


def _parse_header(header):
    """Check a frame header and return its sequence number, command number
    and the size of the payload that follows it"""
    prefix, sequence, command, length = _HEADER.unpack(header)
    if prefix != PREFIX:
        raise error.FramingError("Bad prefix %#x" % prefix)

    payload_size = length - TRAILER_SIZE
    if payload_size < 0:
        raise error.SizeError("Frame length %d too small for trailer" % length)
    if payload_size > MAX_PAYLOAD_SIZE:
        raise error.SizeError(
            "Payload too large; %d > %d" % (payload_size, MAX_PAYLOAD_SIZE)
        )

    return sequence, command, payload_size


def _check_trailer(header, payload, trailer):
    crc, suffix = _TRAILER.unpack(trailer)
    if suffix != SUFFIX:
        raise error.FramingError("Bad suffix %#x" % suffix)

    calculated = zlib.crc32(payload, zlib.crc32(header))
    if calculated != crc:
        raise error.ChecksumError("CRC mismatch; %08x != %08x" % (calculated, crc))


def _readinto_exactly(stream, view):
    filled = 0
    while filled < len(view):
        count = stream.readinto(view[filled:])
        if not count:
            raise error.NetworkError(
                "Stream ended after %d of %d bytes" % (filled, len(view))
            )
        filled += count


def decode_from(stream, buffer=None) -> Frame:
    """Read a single frame from a blocking binary stream (anything with a
    ``readinto`` method, like :class:`io.BytesIO` or a socket's
    ``makefile('rb')``)

    If a ``buffer`` (a bytearray) is passed that is large enough to hold the
    payload, the payload is read into it, and the returned frame's payload is
    a memoryview onto the buffer's start; the buffer's content is only
    meaningful if a frame is returned. Otherwise, fresh memory is allocated.
    """
    header = bytearray(HEADER_SIZE)
    _readinto_exactly(stream, memoryview(header))
    sequence, command, payload_size = _parse_header(header)

    if buffer is not None and len(buffer) >= payload_size:
        payload = memoryview(buffer)[:payload_size]
    else:
        payload = memoryview(bytearray(payload_size))
    _readinto_exactly(stream, payload)

    trailer = bytearray(TRAILER_SIZE)
    _readinto_exactly(stream, memoryview(trailer))
    _check_trailer(header, payload, trailer)

    if buffer is None or payload.obj is not buffer:
        payload = bytes(payload)
    return Frame(sequence, command, payload)


async def read_frame(reader: asyncio.StreamReader) -> Frame:
    """Read a single frame from an asyncio stream.

    A stream that ends (even cleanly between two frames) or fails raises a
    :class:`.error.NetworkError`."""
    try:
        header = await reader.readexactly(HEADER_SIZE)
        sequence, command, payload_size = _parse_header(header)
        payload = await reader.readexactly(payload_size)
        trailer = await reader.readexactly(TRAILER_SIZE)
    except asyncio.IncompleteReadError as e:
        raise error.NetworkError(
            "Connection closed after %d of %d bytes" % (len(e.partial), e.expected)
        ) from e
    except OSError as e:
        raise error.NetworkError("Read failed: %s" % e) from e

    _check_trailer(header, payload, trailer)
    return Frame(sequence, command, payload)
