# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Module in which all meaningful numbers of the Tuya LAN protocol (version
3.1) are collected.

The command numbers are not exhaustively known; :class:`Command` accepts any
number and only names the ones this library uses."""

from .util import ExtensibleIntEnum

__all__ = [
    "PREFIX",
    "SUFFIX",
    "MAX_PACKET_SIZE",
    "HEADER_SIZE",
    "TRAILER_SIZE",
    "MAX_PAYLOAD_SIZE",
    "VERSION",
    "STATUS_PORT",
    "CLIENT_PORT",
    "Command",
    "SET_STATE",
    "GET_STATE",
]

#: Magic value that starts every frame (sent as a 32 bit word)
PREFIX = 0x55AA
#: Magic value that ends every frame (sent as a 32 bit word)
SUFFIX = 0xAA55

#: Frames are limited to a single TCP segment in practice
MAX_PACKET_SIZE = 0xFFFF

#: Prefix, sequence number, command number and length
HEADER_SIZE = 16
#: CRC and suffix
TRAILER_SIZE = 8

MAX_PAYLOAD_SIZE = MAX_PACKET_SIZE - TRAILER_SIZE

#: Protocol version, which doubles as the marker of encrypted payloads
VERSION = b"3.1"

#: UDP port devices broadcast their status announcements to
STATUS_PORT = 6666
#: TCP port devices accept client connections on
CLIENT_PORT = 6668


class Command(ExtensibleIntEnum):
    SET_STATE = 0x07
    GET_STATE = 0x0A


SET_STATE = Command.SET_STATE
GET_STATE = Command.GET_STATE
