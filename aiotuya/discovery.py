# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Listening for device announcements

Devices periodically broadcast a frame to UDP port 6666 that describes them
(IP address, device ID, product key and protocol version). The
:class:`StatusListener` decodes these into :class:`Status` records, which
tell everything needed to connect to a device except its key.
"""

import asyncio
import logging
import socket
from collections import namedtuple

from . import defaults
from . import error
from .frame import Frame
from .response import Response


class Status(
    namedtuple(
        "_Status",
        (
            "ip",
            "gw_id",
            "active",
            "ability",
            "mode",
            "encrypt",
            "product_key",
            "version",
        ),
    )
):
    """Announcement of a device"""

    __slots__ = ()

    @classmethod
    def from_json(cls, document):
        if not isinstance(document, dict):
            raise TypeError("Status needs to be an object, got %r" % (document,))
        return cls(
            ip=document.get("ip", ""),
            gw_id=document.get("gwId", ""),
            active=document.get("active", 0),
            ability=document.get("ability", 0),
            mode=document.get("mode", 0),
            encrypt=document.get("encrypt", False),
            product_key=document.get("productKey", ""),
            version=document.get("version", ""),
        )

    @property
    def device_id(self):
        """The ID to address the device by; for devices that are not behind
        a gateway, this is the gateway ID"""
        return self.gw_id

    def address(self, port=None):
        """The (host, port) tuple a client connection to the device is opened
        to"""
        if port is None:
            port = defaults.get_client_port()
        return (self.ip, port)


def parse_status(datagram) -> Status:
    """Decode a single announcement datagram

    Raises a :class:`.error.FrameError` if the datagram is not a single
    frame, and :class:`.error.RemoteError` or
    :class:`.error.UnparsableResponse` if it does not carry a successful
    status with a JSON description."""
    return Response(Frame.decode(datagram)).decode_json(Status.from_json)


class _StatusProtocol(asyncio.DatagramProtocol):
    def __init__(self, listener):
        self._listener = listener

    def datagram_received(self, data, addr):
        self._listener._datagram_received(data, addr)

    def error_received(self, exc):
        self._listener.log.warning("Error received on status listener: %s", exc)

    def connection_lost(self, exc):
        self._listener._connection_lost(exc)


_CLOSED = object()


class StatusListener:
    """A UDP endpoint that receives device announcements

    Use the :meth:`create` coroutine to construct one. Announcements are
    available through :meth:`receive` or by asynchronous iteration, which
    ends when the listener is closed::

        async with await StatusListener.create() as listener:
            async for status in listener:
                print(status.device_id, status.address())
    """

    #: Announcements kept while nobody receives them; the oldest are dropped
    #: first. Devices repeat their announcements every few seconds.
    backlog = 64

    def __init__(self, *, log=None, backlog=None):
        self.log = log or logging.getLogger("tuya.discovery")
        if backlog is not None:
            self.backlog = backlog
        self._queue = asyncio.Queue()
        self._transport = None
        self._closed = False
        #: The local port actually bound to
        self.port = None

    def __repr__(self):
        return "<%s on port %s%s>" % (
            type(self).__name__,
            self.port,
            ", closed" if self._closed else "",
        )

    @classmethod
    async def create(cls, bind=None, port=None, *, log=None, backlog=None):
        """Start listening on ``port`` (by default, the status port, see
        :func:`.defaults.get_status_port`) of the local address ``bind`` (by
        default, all IPv4 addresses)"""
        self = cls(log=log, backlog=backlog)
        if port is None:
            port = defaults.get_status_port()
        if bind is None:
            bind = "0.0.0.0"

        loop = asyncio.get_running_loop()
        try:
            self._transport, _ = await loop.create_datagram_endpoint(
                lambda: _StatusProtocol(self),
                local_addr=(bind, port),
                family=socket.AF_INET,
                reuse_port=defaults.has_reuse_port() or None,
                allow_broadcast=True,
            )
        except OSError as e:
            raise error.NetworkError(
                "Could not listen for status on port %d" % port
            ) from e

        self.port = self._transport.get_extra_info("sockname")[1]
        self.log.debug("Listening for status announcements on port %d", self.port)
        return self

    def _datagram_received(self, data, addr):
        if self._closed:
            return
        try:
            status = parse_status(data)
        except error.Error as e:
            self.log.warning("Ignoring malformed datagram from %s: %s", addr[0], e)
            return
        self.log.debug("Received status %r from %s", status, addr[0])
        if self._queue.qsize() >= self.backlog:
            dropped = self._queue.get_nowait()
            self.log.debug("Backlog full, dropping status %r", dropped)
        self._queue.put_nowait(status)

    def _connection_lost(self, exc):
        if exc is not None:
            self.log.warning("Status listener lost its socket: %s", exc)
        self._mark_closed()

    def _mark_closed(self):
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def receive(self) -> Status:
        """Wait for the next announcement

        Raises :class:`.error.ClosedError` once the listener is closed and
        everything received before has been taken out."""
        if self._closed and self._queue.empty():
            raise error.ClosedError("Status listener is closed")
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave it for other receivers
            self._queue.put_nowait(_CLOSED)
            raise error.ClosedError("Status listener is closed")
        return item

    def close(self):
        if self._transport is not None:
            self._transport.close()
        self._mark_closed()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return await self.receive()
        except error.ClosedError:
            raise StopAsyncIteration
