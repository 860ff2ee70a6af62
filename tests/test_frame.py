# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

import asyncio
import io
import unittest

from aiotuya import error
from aiotuya.frame import Frame, decode_from, read_frame
from aiotuya.numbers import Command, GET_STATE, SET_STATE, MAX_PAYLOAD_SIZE

# A status announcement as broadcast by a device
ANNOUNCEMENT = bytes.fromhex(
    "000055aa00000000000000000000009f000000007b226970223a2231302e3130"
    "2e3230302e313332222c2267774964223a223034383835303437656366616263"
    "393938653661222c22616374697665223a322c226162696c697479223a302c22"
    "6d6f6465223a302c22656e6372797074223a747275652c2270726f647563744b"
    "6579223a226b6579356e636b347461767934336a70222c2276657273696f6e22"
    "3a22332e31227d5bb713b00000aa55"
)


class TestFrameEncoding(unittest.TestCase):
    def test_decode(self):
        stream = io.BytesIO(ANNOUNCEMENT)
        frame = decode_from(stream)
        self.assertEqual(frame.sequence, 0)
        self.assertEqual(frame.command, 0)
        self.assertEqual(frame.payload, ANNOUNCEMENT[16:-8])
        self.assertEqual(stream.read(), b"", "Frame was not consumed completely")

    def test_decode_bytes(self):
        self.assertEqual(Frame.decode(ANNOUNCEMENT), decode_from(io.BytesIO(ANNOUNCEMENT)))

    def test_encode(self):
        frame = Frame(0, 0, ANNOUNCEMENT[16:-8])
        self.assertEqual(frame.encode(), ANNOUNCEMENT)

    def test_roundtrip(self):
        for frame in (
            Frame(1, GET_STATE, b'{"gwId":"x","devId":"x"}'),
            Frame(0xFFFFFFFF, SET_STATE, b""),
            Frame(42, 0x1234, b"\x00" * 100),
            Frame(7, 9, b"\xff" * MAX_PAYLOAD_SIZE),
        ):
            self.assertEqual(Frame.decode(frame.encode()), frame)
            self.assertEqual(decode_from(io.BytesIO(frame.encode())), frame)

    def test_unknown_command(self):
        frame = Frame.decode(Frame(3, 0x42, b"").encode())
        self.assertIsInstance(frame.command, Command)
        self.assertEqual(frame.command, 0x42)
        self.assertEqual(str(frame.command), "66")
        self.assertEqual(str(Frame(1, 7).command), "SET_STATE")

    def test_unknown_commands_not_retained(self):
        known = dict(Command._value2member_map_)
        for number in range(0x1000, 0x1100):
            self.assertEqual(Frame.decode(Frame(1, number).encode()).command, number)
        self.assertEqual(Command._value2member_map_, known)

    def test_length_field(self):
        encoded = Frame(5, GET_STATE, b"abc").encode()
        self.assertEqual(len(encoded), 16 + 3 + 8)
        self.assertEqual(encoded[12:16], (3 + 8).to_bytes(4, "big"))

    def test_bad_crc(self):
        bad = bytearray(ANNOUNCEMENT)
        bad[len(bad) - 5] += 1
        with self.assertRaises(error.ChecksumError):
            decode_from(io.BytesIO(bad))

    def test_flipped_bytes(self):
        encoded = Frame(0x01020304, GET_STATE, b'{"dps":{"1":true}}').encode()
        # Sequence number, command number and payload are covered by the CRC;
        # the length field is not flipped as that changes where the trailer is
        # looked for.
        positions = list(range(4, 12)) + list(range(16, len(encoded) - 8))
        for position in positions:
            bad = bytearray(encoded)
            bad[position] ^= 0x01
            with self.subTest(position=position):
                with self.assertRaises(error.ChecksumError):
                    Frame.decode(bad)
                with self.assertRaises(error.ChecksumError):
                    decode_from(io.BytesIO(bad))

    def test_bad_magic(self):
        encoded = Frame(1, GET_STATE, b"{}").encode()
        for position in (2, 3, len(encoded) - 2, len(encoded) - 1):
            bad = bytearray(encoded)
            bad[position] ^= 0xFF
            with self.subTest(position=position):
                with self.assertRaises(error.FramingError):
                    Frame.decode(bad)
                with self.assertRaises(error.FramingError):
                    decode_from(io.BytesIO(bad))

    def test_bad_length(self):
        encoded = bytearray(Frame(1, GET_STATE, b"{}").encode())
        encoded[12:16] = (7).to_bytes(4, "big")
        with self.assertRaises(error.SizeError):
            Frame.decode(encoded)
        encoded[12:16] = (MAX_PAYLOAD_SIZE + 9).to_bytes(4, "big")
        with self.assertRaises(error.SizeError):
            decode_from(io.BytesIO(encoded))

    def test_payload_too_large(self):
        with self.assertRaises(error.SizeError):
            Frame(1, SET_STATE, bytes(MAX_PAYLOAD_SIZE + 1)).encode()

    def test_truncated(self):
        for length in (0, 10, 16, len(ANNOUNCEMENT) - 1):
            with self.subTest(length=length):
                with self.assertRaises(error.NetworkError):
                    decode_from(io.BytesIO(ANNOUNCEMENT[:length]))
                with self.assertRaises(error.FramingError):
                    Frame.decode(ANNOUNCEMENT[:length])

    def test_trailing_data(self):
        with self.assertRaises(error.FramingError):
            Frame.decode(ANNOUNCEMENT + b"\x00")

    def test_decode_into_buffer(self):
        buffer = bytearray(ANNOUNCEMENT[15])
        frame = decode_from(io.BytesIO(ANNOUNCEMENT), buffer)
        self.assertIsInstance(frame.payload, memoryview)
        self.assertIs(frame.payload.obj, buffer, "Buffer was not used")
        self.assertEqual(frame.payload, ANNOUNCEMENT[16:-8])

    def test_decode_buffer_too_small(self):
        buffer = bytearray(10)
        frame = decode_from(io.BytesIO(ANNOUNCEMENT), buffer)
        self.assertIsInstance(frame.payload, bytes)
        self.assertEqual(frame.payload, ANNOUNCEMENT[16:-8])
        self.assertEqual(buffer, bytearray(10))

    def test_consecutive_frames(self):
        first = Frame(1, GET_STATE, b"one")
        second = Frame(2, SET_STATE, b"two")
        stream = io.BytesIO(first.encode() + second.encode())
        self.assertEqual(decode_from(stream), first)
        self.assertEqual(decode_from(stream), second)
        with self.assertRaises(error.NetworkError):
            decode_from(stream)


class TestReadFrame(unittest.IsolatedAsyncioTestCase):
    def _reader(self, data):
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return reader

    async def test_read(self):
        reader = self._reader(ANNOUNCEMENT + Frame(9, GET_STATE, b"x").encode())
        self.assertEqual(await read_frame(reader), Frame.decode(ANNOUNCEMENT))
        self.assertEqual(await read_frame(reader), Frame(9, GET_STATE, b"x"))

    async def test_eof(self):
        with self.assertRaises(error.NetworkError):
            await read_frame(self._reader(b""))
        with self.assertRaises(error.NetworkError):
            await read_frame(self._reader(ANNOUNCEMENT[:-3]))

    async def test_bad_crc(self):
        bad = bytearray(ANNOUNCEMENT)
        bad[20] ^= 0x80
        with self.assertRaises(error.ChecksumError):
            await read_frame(self._reader(bytes(bad)))
