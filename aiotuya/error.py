# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""
Common errors for the aiotuya library

Errors fall into three groups:

* Errors about the byte stream (:class:`FrameError` and its subclasses,
  :class:`NetworkError`). Once one of them occurs on a connection, the stream
  can not be trusted any more, and a session that sees one is shut down.

* Errors about the encryption envelope (:class:`CryptoError` and its
  subclasses). They only fail the operation that raised them, unless they
  happen on an incoming frame, where the session treats them like a stream
  error.

* Errors about a single exchange (:class:`RemoteError`,
  :class:`UnparsableResponse`, :class:`TimeoutError`), which are only raised
  to the one caller whose request they concern.
"""

import errno


class Error(Exception):
    """
    Base exception for all exceptions raised by aiotuya
    """

    def extra_help(self):
        """Information printed at aiotuya-client or similar occasions when the
        error message itself may be insufficient to point the user in the right
        direction"""
        return None


class FrameError(Error):
    """Base class for all errors that indicate a malformed frame"""


class FramingError(FrameError):
    """A frame did not start with the prefix magic or end with the suffix
    magic (or was followed by unexpected data)"""


class SizeError(FrameError):
    """A frame announced a length that can not be valid, or a payload was too
    large to be sent in a single frame"""


class ChecksumError(FrameError):
    """The CRC32 in a frame's trailer did not match its content"""


class CryptoError(Error):
    """Base class for all errors in the encryption envelope"""


class NoKeyError(CryptoError):
    """An operation needed a key, but none was configured"""


class InvalidKeyError(CryptoError):
    """The configured key can not be used with AES"""


class UnsupportedVersionError(CryptoError):
    """A ciphertext did not start with the supported protocol version"""


class TagVerificationError(CryptoError):
    """The authentication tag of a ciphertext did not match its content"""


class MalformedCiphertextError(CryptoError):
    """The authenticated part of a ciphertext could not be decoded into whole
    AES blocks"""


class PaddingError(CryptoError):
    """The decrypted plaintext did not carry valid PKCS#7 padding"""


class TooSmallError(CryptoError):
    """A ciphertext was shorter than the smallest possible envelope"""


class RemoteError(Error):
    """
    The device answered a request with a non-zero status code.

    The code is available as :attr:`code`, the accompanying text as
    :attr:`message`.
    """

    def __init__(self, code, message=""):
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self):
        return "%s [error code %d]" % (self.message, self.code)


class UnparsableResponse(Error):
    """A response payload did not carry a status code, or its body was not the
    expected JSON document"""


class NetworkError(Error):
    """Base class for all "something went wrong with name resolution, sending
    or receiving data".

    These are often raised from OSError or asyncio.IncompleteReadError, but
    are wrapped in order to make catching them possible independently of the
    underlying stream implementation."""

    def extra_help(self):
        if isinstance(self.__cause__, OSError):
            if self.__cause__.errno == errno.ECONNREFUSED:
                return "The device could be reached, but refused the connection. Devices accept only a single client connection at a time; check whether another client (eg. the vendor's app) is connected."
            if self.__cause__.errno == errno.EHOSTUNREACH:
                return "No way of contacting the device could be found. It may be offline or on a different network."
            if self.__cause__.errno == errno.EADDRINUSE:
                return "The local port is already in use. When listening for broadcasts, another listener may be running; setting AIOTUYA_REUSE_PORT=1 may help."


class ResolutionError(NetworkError):
    """Resolving the host name of a device to a usable address was not
    possible"""


class TimeoutError(NetworkError):
    """A request did not receive a response within the time it was given.

    Like NetworkError, receiving this alone does not indicate whether the
    request has reached the device or not."""

    def extra_help(self):
        return "Neither a response nor an error was received. This can have a wide range of causes, from a wrong device ID to a device that does not support the command."


class ClosedError(Error):
    """The session was closed (either explicitly or after a connection error)
    before or while the operation was running"""
