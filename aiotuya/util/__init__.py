# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Tools not directly related with the Tuya protocol that are needed to
provide the API

These are only part of the stable API to the extent they are used by other
APIs -- for example, :class:`aiotuya.numbers.Command` is an
:class:`ExtensibleIntEnum`, but don't expect the helpers here to be usable in
a stable way for own extensions.
"""

import enum
import urllib.parse


class ExtensibleIntEnum(enum.IntEnum):
    """Similar to Python's enum.IntEnum, this type can be used for named
    numbers which are not comprehensively known, like Tuya command numbers."""

    def __repr__(self):
        return "<%s %d%s>" % (
            type(self).__name__,
            self,
            ' "%s"' % self.name if hasattr(self, "name") else "",
        )

    def __str__(self):
        return self.name if hasattr(self, "name") else int.__str__(self)

    @classmethod
    def _missing_(cls, value):
        """Construct a member, sidestepping the lookup (because we know the
        lookup already failed, and there is no singleton instance to return)

        The new member is not added to the lookup table, which would otherwise
        grow with every number a peer sends."""
        new_member = int.__new__(cls, value)
        new_member._value_ = value
        return new_member


def hostportjoin(host, port=None):
    """Join a host and optionally port into a host:port string

    >>> hostportjoin('192.168.1.20')
    '192.168.1.20'
    >>> hostportjoin('192.168.1.20', 6668)
    '192.168.1.20:6668'
    >>> hostportjoin('2001:db8::1', 6668)
    '[2001:db8::1]:6668'
    """
    if ":" in host and not (host.startswith("[") and host.endswith("]")):
        host = "[%s]" % host

    if port is None:
        hostinfo = host
    else:
        hostinfo = "%s:%d" % (host, port)
    return hostinfo


def hostportsplit(hostport):
    """Like urllib.parse.splitport, but return port as int, and as None if not
    given. Also, it allows giving IPv6 addresses like a netloc:

    >>> hostportsplit('foo')
    ('foo', None)
    >>> hostportsplit('foo:6668')
    ('foo', 6668)
    >>> hostportsplit('[::1%eth0]:6668')
    ('::1%eth0', 6668)
    """

    pseudoparsed = urllib.parse.SplitResult(None, hostport, None, None, None)
    try:
        return pseudoparsed.hostname, pseudoparsed.port
    except ValueError:
        if "[" not in hostport and hostport.count(":") > 1:
            raise ValueError(
                "Could not parse network location. "
                "IPv6 literals need to be put in square brackets to "
                "distinguish them from port numbers."
            )
        raise
