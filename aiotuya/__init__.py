# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""
The aiotuya package is an asyncio client library for the local network
protocol (version 3.1) spoken by Tuya based smart plugs, switches and lights.

Module contents
---------------

This root module re-exports the most commonly used classes in aiotuya:
:class:`.Device`, :class:`.StatusListener`, the lower level
:class:`.SessionManager`, :class:`.Connection`, :class:`.Frame` and
:class:`.Cipher`, as well as all protocol constants from :mod:`.numbers`; see
their respective documentation entries.
"""

from . import numbers

# flake8 doesn't see through the global re-export
from .numbers import *  # noqa: F401, F403
from .frame import Frame
from .cipher import Cipher
from .connection import Connection
from .session import SessionManager
from .device import Device, DeviceState
from .discovery import Status, StatusListener

__all__ = numbers.__all__ + [
    "Frame",
    "Cipher",
    "Connection",
    "SessionManager",
    "Device",
    "DeviceState",
    "Status",
    "StatusListener",
]
