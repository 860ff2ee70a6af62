# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""High-level access to a single device's data points

A device's state is a sparse set of numbered *data points* ("dps"), each
holding a boolean, number or string; what each number means depends on the
product. On the wire, the numbers are JSON object keys; :class:`Device`
presents them as a :class:`DeviceState` with integer keys.
"""

import time

from . import defaults
from .connection import Connection
from .numbers import GET_STATE, SET_STATE
from .session import SessionManager


class DeviceState(dict):
    """Mapping from data point numbers to their values"""

    @classmethod
    def from_json(cls, dps):
        if not isinstance(dps, dict):
            raise TypeError("Data points need to be an object, got %r" % (dps,))
        return cls((int(k), v) for (k, v) in dps.items())

    def to_json(self):
        return {str(k): v for (k, v) in self.items()}


def _decode_state(document):
    return DeviceState.from_json(document["dps"])


class Device:
    """A device, addressed by its ID, reached through an open
    :class:`.SessionManager`

    The device takes over the session, and closing the device closes it.

    Example::

        async with await Device.connect("192.168.1.20", "04885047ecfabc998e6a", key) as device:
            state = await device.get_state()
            await device.set_state({1: not state[1]})
    """

    def __init__(self, device_id, session):
        self.device_id = device_id
        self.session = session

    def __repr__(self):
        return "<%s %s via %r>" % (type(self).__name__, self.device_id, self.session)

    @classmethod
    async def connect(cls, host, device_id, key=None, *, port=None, log=None):
        """Open a connection and session to the device at ``host``.

        If no ``key`` is given, the one configured in the environment (see
        :func:`.defaults.get_default_key`) is used, if any. Without a key,
        only :meth:`get_state` works."""
        if key is None:
            key = defaults.get_default_key()
        connection = await Connection.open(host, port, key, log=log)
        return cls(device_id, SessionManager(connection))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def get_state(self, *, timeout=None) -> DeviceState:
        """Request the current values of all data points"""
        return await self.session.request(
            GET_STATE,
            {"gwId": self.device_id, "devId": self.device_id},
            decoder=_decode_state,
            timeout=timeout,
        )

    async def set_state(self, state, *, timeout=None):
        """Request updates to the data points given in ``state``.

        Data points not mentioned are left alone by the device. Setting state
        needs the device key, as the request is encrypted."""
        await self.session.request(
            SET_STATE,
            {
                "devId": self.device_id,
                "gwId": self.device_id,
                "uid": "",
                "t": int(time.time()),
                "dps": {str(k): v for (k, v) in state.items()},
            },
            encrypt=True,
            timeout=timeout,
        )

    async def close(self):
        await self.session.close()
