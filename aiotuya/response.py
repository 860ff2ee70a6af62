# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Partially decoded messages from a device

Every application payload a device sends (after decryption, if it was
encrypted) starts with a 4 byte big-endian status code. Zero indicates
success, and the rest of the payload is a (possibly empty) JSON document;
any other value indicates an error, and the rest is a human readable
message."""

import json

from . import error

STATUS_SIZE = 4


class Response:
    """A frame received from a device, with its payload decrypted

    Consumers typically determine the expected payload based on the
    :attr:`sequence` or :attr:`command` and then call :meth:`decode_json`.
    """

    def __init__(self, frame):
        self.frame = frame

    def __repr__(self):
        return "<%s #%d %s, %d byte(s) payload>" % (
            type(self).__name__,
            self.sequence,
            self.command,
            len(self.payload),
        )

    @property
    def sequence(self):
        return self.frame.sequence

    @property
    def command(self):
        return self.frame.command

    @property
    def payload(self):
        return self.frame.payload

    def error(self):
        """Return None for payloads with a status code of zero, and an error
        (not raising it) otherwise.

        For non-zero status codes, the error is a :class:`.error.RemoteError`.
        """
        if len(self.payload) < STATUS_SIZE:
            return error.UnparsableResponse(
                "Payload too short; %d < %d" % (len(self.payload), STATUS_SIZE)
            )
        code = int.from_bytes(self.payload[:STATUS_SIZE], "big")
        if code != 0:
            message = bytes(self.payload[STATUS_SIZE:]).decode("utf8", "replace")
            return error.RemoteError(code, message)
        return None

    def body(self) -> bytes:
        """The payload without the leading status code

        Raises the result of :meth:`error` if it is not None."""
        exc = self.error()
        if exc is not None:
            raise exc
        return bytes(self.payload[STATUS_SIZE:])

    def decode_json(self, decoder=None):
        """Parse the body as JSON.

        If a ``decoder`` callable is given, it is applied to the parsed
        document and its result returned; errors it raises as ValueError,
        KeyError or TypeError are reported as
        :class:`.error.UnparsableResponse`."""
        data = self.body()
        try:
            document = json.loads(data)
        except ValueError as e:
            raise error.UnparsableResponse("Body is not JSON: %s" % e) from e

        if decoder is None:
            return document
        try:
            return decoder(document)
        except (ValueError, KeyError, TypeError) as e:
            raise error.UnparsableResponse(
                "Body does not have the expected structure: %r" % (e,)
            ) from e
