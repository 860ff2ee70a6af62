# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Non-fixture utilities shared between tests"""

import asyncio
import sys

from aiotuya import error
from aiotuya.cipher import Cipher
from aiotuya.connection import Connection
from aiotuya.frame import Frame, read_frame
from aiotuya.session import SessionManager

from .fixtures import WithLogMonitoring, ASYNCTEST_TIMEOUT

if "coverage" in sys.modules:
    PYTHON_PREFIX = [sys.executable, "-m", "coverage", "run"]
else:
    PYTHON_PREFIX = [sys.executable]

TEST_KEY = b"bbe88b3f4106d354"
TEST_DEVICE_ID = "04885047ecfabc998e6a"


def status_payload(body=b"", code=0):
    if isinstance(body, str):
        body = body.encode("utf8")
    return code.to_bytes(4, "big") + body


class FakeDevice:
    """A device stand-in on a loopback TCP port

    It does not answer anything by itself; tests take the received frames out
    of :meth:`next_request` and decide what to send back, in which order."""

    def __init__(self, key=TEST_KEY):
        self.cipher = Cipher(key) if key else None
        self.received = asyncio.Queue()
        self.connected = asyncio.Event()
        self.disconnected = asyncio.Event()
        self.server = None
        self.writer = None
        self.port = None

    async def start(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def _handle(self, reader, writer):
        self.writer = writer
        self.connected.set()
        try:
            while True:
                frame = await read_frame(reader)
                await self.received.put(frame)
        except error.Error:
            pass
        finally:
            self.disconnected.set()
            writer.close()

    async def next_request(self):
        return await asyncio.wait_for(self.received.get(), ASYNCTEST_TIMEOUT)

    def decrypt(self, frame):
        return self.cipher.decrypt(frame.payload)

    async def send_raw(self, data):
        await asyncio.wait_for(self.connected.wait(), ASYNCTEST_TIMEOUT)
        self.writer.write(data)
        await self.writer.drain()

    async def reply(self, sequence, command, body=b"", *, code=0, encrypt=False):
        payload = status_payload(body, code)
        if encrypt:
            payload = self.cipher.encrypt(payload)
        await self.send_raw(Frame(sequence, command, payload).encode())

    async def stop(self):
        if self.writer is not None:
            self.writer.close()
        self.server.close()
        await self.server.wait_closed()


class WithFakeDevice(WithLogMonitoring):
    """Test case with a :class:`FakeDevice` in ``self.device`` and a
    :class:`.SessionManager` connected to it in ``self.session``"""

    device_key = TEST_KEY
    client_key = TEST_KEY

    async def asyncSetUp(self):
        await super().asyncSetUp()

        self.device = FakeDevice(self.device_key)
        await self.device.start()
        self.connection = await Connection.open(
            "127.0.0.1", self.device.port, self.client_key
        )
        self.session = SessionManager(self.connection)

    async def asyncTearDown(self):
        await self.session.close()
        await self.device.stop()
        await asyncio.wait_for(self.device.disconnected.wait(), ASYNCTEST_TIMEOUT)

        await super().asyncTearDown()
