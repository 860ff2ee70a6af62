# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""A single TCP connection to a device

The :class:`Connection` knows how to put payloads into frames and frames onto
the stream, and how to get them back, but not which response belongs to
which request; that is the job of :class:`aiotuya.session.SessionManager`.
"""

import asyncio
import json
import logging
import socket

from . import defaults
from . import error
from .cipher import Cipher, detect_encryption
from .frame import Frame, read_frame
from .response import Response
from .util import hostportjoin


def serialize_payload(payload) -> bytes:
    """Turn a request payload into bytes

    Byte strings are sent unmodified; anything else is serialized as compact
    JSON with sorted keys, so that equal payloads always produce equal
    bytes."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf8")


class Connection:
    """A client connection to a device

    Its lifetime is tied to the underlying TCP connection; once that is
    closed, the Connection can not be used any more.

    :meth:`write` may be called from any number of tasks concurrently;
    :meth:`read` may only be called by a single task at a time.
    """

    def __init__(self, reader, writer, cipher=None, *, log=None):
        self._reader = reader
        self._writer = writer
        self.cipher = cipher
        self.log = log or logging.getLogger("tuya.connection")

        # Incremented for each frame; responses carry their request's number
        self._sequence = 0
        # Protects _sequence and _writer
        self._write_lock = asyncio.Lock()

        self._closed = False

    def __repr__(self):
        return "<%s at %#x to %s%s>" % (
            type(self).__name__,
            id(self),
            self.hostinfo,
            ", closed" if self._closed else "",
        )

    @property
    def hostinfo(self):
        peername = self._writer.get_extra_info("peername")
        if peername is None:
            return "(unknown)"
        return hostportjoin(*peername[:2])

    @classmethod
    async def open(cls, host, port=None, key=None, *, log=None):
        """Connect to a device.

        ``key`` is only needed for sending or receiving encrypted payloads; an
        unusable key is reported before any connection attempt is made."""
        cipher = Cipher(key) if key else None
        if port is None:
            port = defaults.get_client_port()

        try:
            reader, writer = await asyncio.open_connection(host, port)
        except socket.gaierror as e:
            raise error.ResolutionError(
                "No address information found for %r" % host
            ) from e
        except OSError as e:
            raise error.NetworkError(
                "Connection failed to %s" % hostportjoin(host, port)
            ) from e

        self = cls(reader, writer, cipher, log=log)
        self.log.debug("Connected %r", self)
        return self

    async def write(self, command, payload, *, encrypt=False, before_send=None) -> int:
        """Send a frame with the given command number and payload (bytes, or
        anything JSON serializable), encrypting the payload if requested.

        The next sequence number is assigned to the frame and returned. If
        ``before_send`` is given, it is called with that number after the
        frame is built but before anything is written, so that a response can
        not arrive before whatever it sets up is in place."""
        if encrypt and self.cipher is None:
            raise error.NoKeyError("Encryption requested, but no key configured")

        data = serialize_payload(payload)
        if encrypt:
            data = self.cipher.encrypt(data)

        async with self._write_lock:
            if self._closed:
                raise error.ClosedError("Connection is closed")

            sequence = (self._sequence + 1) % (2**32)
            frame = Frame(sequence, command, data)
            encoded = frame.encode()
            self._sequence = sequence

            if before_send is not None:
                before_send(sequence)

            self.log.debug("Sending %r", frame)
            try:
                self._writer.write(encoded)
                await self._writer.drain()
            except OSError as e:
                raise error.NetworkError("Write failed: %s" % e) from e

        return sequence

    async def read(self) -> Response:
        """Wait for the next frame from the device and return it as a
        :class:`.Response`, decrypting its payload if it is encrypted."""
        frame = await read_frame(self._reader)
        self.log.debug("Received %r", frame)

        if detect_encryption(frame.payload):
            if self.cipher is None:
                raise error.NoKeyError(
                    "Received encrypted payload, but no key configured"
                )
            frame = frame._replace(payload=self.cipher.decrypt(frame.payload))

        return Response(frame)

    async def close(self):
        """Close the connection. Calling this more than once has no effect."""
        if self._closed:
            return
        self._closed = True

        self.log.debug("Closing %r", self)
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as e:
            # The connection is gone either way
            self.log.debug("Error while closing connection: %s", e)
