# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""This module contains helpers that inspect the environment and platform
specifics to give sane values to aiotuya defaults.

All of these can be overridden where the values are actually used (typically
by passing explicit arguments); the environment variables are a convenience
for command line use and test setups. This module is considered internal to
aiotuya and not part of the API.
"""

import os
import socket

from .numbers import CLIENT_PORT, STATUS_PORT


def get_client_port(*, use_env=True):
    """Return the TCP port devices are contacted on.

    Can be overridden by setting ``AIOTUYA_CLIENT_PORT``."""

    if use_env and os.environ.get("AIOTUYA_CLIENT_PORT"):
        return int(os.environ["AIOTUYA_CLIENT_PORT"])

    return CLIENT_PORT


def get_status_port(*, use_env=True):
    """Return the UDP port status broadcasts are listened for on.

    Can be overridden by setting ``AIOTUYA_STATUS_PORT``."""

    if use_env and os.environ.get("AIOTUYA_STATUS_PORT"):
        return int(os.environ["AIOTUYA_STATUS_PORT"])

    return STATUS_PORT


def get_default_key(*, use_env=True):
    """Return the device key to use when none is given explicitly, or None.

    Read from ``AIOTUYA_KEY``; there is no built-in default, as every device
    has its own key."""

    if use_env and os.environ.get("AIOTUYA_KEY"):
        return os.environ["AIOTUYA_KEY"]

    return None


def has_reuse_port(*, use_env=True):
    """Return true if the platform indicates support for SO_REUSEPORT.

    Can be overridden by explicitly setting ``AIOTUYA_REUSE_PORT`` to 1 or
    0."""

    if use_env and os.environ.get("AIOTUYA_REUSE_PORT"):
        return bool(int(os.environ["AIOTUYA_REUSE_PORT"]))

    return hasattr(socket, "SO_REUSEPORT")
