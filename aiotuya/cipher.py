# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""The authenticated encryption envelope of the Tuya protocol

An encrypted payload looks like this::

    <version "3.1"> <tag: 16 hex digits> <base64(AES-ECB(PKCS#7(plaintext)))>

where the tag is the hex representation of bytes 4 to 12 of an MD5 digest over
``b"data=" + base64 + b"||lpv=" + version + b"||" + key``.

Every block is encrypted independently in ECB mode, without any IV or nonce.
This is what the devices do, and is reproduced exactly; any other mode would
not be understood by them.
"""

import base64
import binascii
import hashlib
import hmac
import logging

from cryptography.hazmat.primitives import ciphers

from . import error
from .numbers import VERSION

_alglog = logging.getLogger("tuya.cryptography")

BLOCK_SIZE = 16
TAG_SIZE = 16

# Version, tag and a single base64 encoded block
MIN_ENVELOPE_SIZE = len(VERSION) + TAG_SIZE + len(base64.b64encode(bytes(BLOCK_SIZE)))


def detect_encryption(payload) -> bool:
    """Tell whether a received payload is an encryption envelope (as opposed
    to a plain status or error payload, which share the channel)"""
    return bytes(payload[: len(VERSION)]) == VERSION


class Cipher:
    """Encryptor and decryptor for payloads of a single device

    The key is used as raw bytes. Device keys are usually 16 characters that
    look like hex digits, but they are not hex-decoded: ``"bbe88b3f4106d354"``
    is the 16 byte AES-128 key ``b"bbe88b3f4106d354"``.
    """

    def __init__(self, key):
        if not key:
            raise error.NoKeyError("No key given")
        if isinstance(key, str):
            key = key.encode("ascii")
        if len(key) not in (16, 24, 32):
            raise error.InvalidKeyError(
                "Key needs to be 16, 24 or 32 bytes long, is %d" % len(key)
            )
        self._key = bytes(key)
        self._cipher = ciphers.Cipher(ciphers.algorithms.AES(self._key), ciphers.modes.ECB())

    def __repr__(self):
        # not showing the key
        return "<%s AES-%d>" % (type(self).__name__, len(self._key) * 8)

    def _tag(self, encoded):
        digest = hashlib.md5(
            b"".join((b"data=", encoded, b"||lpv=", VERSION, b"||", self._key))
        ).digest()
        return digest[4:12].hex().encode("ascii")

    def encrypt(self, plaintext) -> bytes:
        """Wrap a plaintext into an envelope. The plaintext is not modified."""
        pad_byte = BLOCK_SIZE - (len(plaintext) % BLOCK_SIZE)
        padded = bytes(plaintext) + bytes((pad_byte,)) * pad_byte

        encryptor = self._cipher.encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        encoded = base64.b64encode(ciphertext)
        return VERSION + self._tag(encoded) + encoded

    def decrypt(self, envelope) -> bytes:
        """Verify and unwrap an envelope. The envelope is not modified.

        All checks that can be done without cryptographic operations (size,
        version) are done first; the tag is verified before anything is
        decoded or decrypted."""
        envelope = bytes(envelope)
        if len(envelope) < MIN_ENVELOPE_SIZE:
            raise error.TooSmallError(
                "Ciphertext too small; %d < %d" % (len(envelope), MIN_ENVELOPE_SIZE)
            )
        if not envelope.startswith(VERSION):
            raise error.UnsupportedVersionError(
                "Ciphertext does not start with %s" % VERSION.decode("ascii")
            )

        tag = envelope[len(VERSION) : len(VERSION) + TAG_SIZE]
        encoded = envelope[len(VERSION) + TAG_SIZE :]
        if not hmac.compare_digest(tag, self._tag(encoded)):
            _alglog.debug("Tag verification failed on %d byte envelope", len(envelope))
            raise error.TagVerificationError("Tag verification failed")

        try:
            ciphertext = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise error.MalformedCiphertextError("Invalid base64 data: %s" % e) from e
        if not ciphertext or len(ciphertext) % BLOCK_SIZE != 0:
            raise error.MalformedCiphertextError(
                "Ciphertext length %d is not a multiple of the block size" % len(ciphertext)
            )

        decryptor = self._cipher.decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        # Padding according to https://www.rfc-editor.org/rfc/rfc5652#section-6.3
        claimed_padding = padded[-1]
        if claimed_padding == 0 or claimed_padding > BLOCK_SIZE:
            raise error.PaddingError("Padding does not match block size")
        if padded[-claimed_padding:] != bytes((claimed_padding,)) * claimed_padding:
            raise error.PaddingError("Padding is inconsistent")

        return padded[:-claimed_padding]
