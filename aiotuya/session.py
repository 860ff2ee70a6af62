# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Request / response transactions over a :class:`.Connection`

A device answers every request with a frame that carries the request's
sequence number, but not necessarily in the order the requests were sent. The
:class:`SessionManager` runs a single read loop per connection and hands each
incoming frame to the request that is waiting for it.

Errors on the stream (malformed frames, failed decryption of an incoming
frame, a lost connection) can not be attributed to a single request, and
resynchronizing the stream is not possible; they end the whole session, and
all waiting and future requests fail with that error.
"""

import asyncio
import logging

from . import error

# log levels used:
# * debug is for things that occur even under perfect conditions.
# * info is for things that are well expected, but might be interesting when
#   looking at a network of devices (unmatched responses, closing).
# * warning is for everything that ends a session unexpectedly.


class SessionManager:
    """Handles request/response transactions with a device over a single
    :class:`.Connection`

    The manager must be created inside a running event loop; it immediately
    starts reading from the connection, and owns the connection's read side
    from then on.

    Sessions end by :meth:`close` being called (which may happen through the
    asynchronous context manager protocol) or when reading from the connection
    fails. Either way, the connection is closed, and the error that ended the
    session is available as :attr:`fatal_error`.
    """

    def __init__(self, connection, *, log=None):
        self.connection = connection
        self.log = log or logging.getLogger("tuya.session")

        self._pending = {}
        """Futures of requests still waiting for their response, by sequence
        number"""

        self._closed = False
        self._fatal_error = None

        self._reader = asyncio.get_running_loop().create_task(
            self._read_loop(),
            name="Read loop of %r" % (connection,),
        )

    def __repr__(self):
        return "<%s on %r, %d pending%s>" % (
            type(self).__name__,
            self.connection,
            len(self._pending),
            ", closed" if self._closed else "",
        )

    @property
    def closed(self):
        return self._closed

    @property
    def fatal_error(self):
        """The error that ended the session (:class:`.error.ClosedError` if it
        was closed on purpose), or None while the session is open"""
        return self._fatal_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def request(
        self, command, payload, *, encrypt=False, decoder=None, timeout=None
    ):
        """Send a request and wait for its response.

        ``payload`` and ``encrypt`` are passed on to
        :meth:`.Connection.write`. If the response indicates an error, a
        :class:`.error.RemoteError` is raised. Otherwise, the
        :class:`.Response` is returned, or, if a ``decoder`` is given, the
        result of :meth:`.Response.decode_json` with that decoder.

        Without a ``timeout`` (in seconds), a request that the device never
        answers waits until the session is closed. When the timeout expires,
        :class:`.error.TimeoutError` is raised, and a late response is
        discarded; the session stays usable.
        """
        if self._fatal_error is not None:
            self._raise_fatal()

        future = asyncio.get_running_loop().create_future()
        sequence = None

        def register(assigned):
            nonlocal sequence
            sequence = assigned
            if self._closed:
                # Closed while waiting for the write lock
                self._raise_fatal()
            self._pending[sequence] = future

        try:
            try:
                await self.connection.write(
                    command, payload, encrypt=encrypt, before_send=register
                )
            except error.NetworkError as e:
                # Nobody is going to await it
                future.cancel()
                await self._fail(e)
                raise
            except error.ClosedError:
                # The connection was closed by a session failure while
                # waiting for the write lock
                if self._fatal_error is None:
                    raise
                self._raise_fatal()

            self.log.debug("Sent request #%d, waiting for response", sequence)
            try:
                if timeout is None:
                    response = await future
                else:
                    response = await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError as e:
                raise error.TimeoutError(
                    "No response to request #%d within %s seconds" % (sequence, timeout)
                ) from e
            except error.Error as e:
                if e is not self._fatal_error:
                    raise
                self._raise_fatal()
        finally:
            if sequence is not None and self._pending.get(sequence) is future:
                del self._pending[sequence]

        exc = response.error()
        if exc is not None:
            raise exc
        if decoder is not None:
            return response.decode_json(decoder)
        return response

    def _raise_fatal(self):
        # The same error object is raised to every caller; starting from an
        # empty traceback keeps earlier raises from piling up in it.
        raise self._fatal_error.with_traceback(None)

    async def _read_loop(self):
        while True:
            try:
                response = await self.connection.read()
            except error.Error as e:
                await self._fail(e)
                return
            except Exception as e:
                wrapped = error.NetworkError("Read failed: %r" % (e,))
                wrapped.__cause__ = e
                await self._fail(wrapped)
                return

            future = self._pending.pop(response.sequence, None)
            if future is None:
                self.log.info(
                    "No request matching sequence number %d, dropping %r",
                    response.sequence,
                    response,
                )
                continue

            self.log.debug("Response %r matched to request", response)
            if not future.done():
                future.set_result(response)

    async def _fail(self, exc):
        if self._fatal_error is None:
            self.log.warning("Session on %r failed: %s", self.connection, exc)
            self._fatal_error = exc
        await self.close()

    async def close(self):
        """End the session and close the connection.

        Requests still waiting for a response fail with the error that ended
        the session. Only the first call has any effect."""
        if self._closed:
            return
        self._closed = True

        if self._fatal_error is None:
            self._fatal_error = error.ClosedError("Session was closed")

        pending = self._pending
        self._pending = {}
        self.log.info(
            "Closing session on %r, failing %d pending request(s)",
            self.connection,
            len(pending),
        )
        for future in pending.values():
            if not future.done():
                future.set_exception(self._fatal_error)

        if self._reader is not asyncio.current_task():
            self._reader.cancel()
            await asyncio.wait([self._reader])

        await self.connection.close()
