# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""aiotuya-client is a simple command-line tool for finding and controlling
Tuya devices on the local network"""

import argparse
import asyncio
import json
import logging
import sys

import aiotuya.meta
from aiotuya import defaults
from aiotuya import error
from aiotuya.device import Device
from aiotuya.discovery import StatusListener
from aiotuya.util import hostportsplit

log = logging.getLogger("tuya.aiotuya-client")


def parse_data_point(text):
    """Parse a ``DPS=VALUE`` assignment into a (number, value) pair

    The value is interpreted as JSON where possible, and as a string
    otherwise:

    >>> parse_data_point("1=true")
    (1, True)
    >>> parse_data_point("2=25")
    (2, 25)
    >>> parse_data_point("3=white")
    (3, 'white')
    """
    number, sep, value = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError("Expected DPS=VALUE, got %r" % text)
    try:
        number = int(number)
    except ValueError:
        raise argparse.ArgumentTypeError("Data point %r is not a number" % number)
    try:
        value = json.loads(value)
    except ValueError:
        pass
    return number, value


def build_parser():
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument(
        "-v",
        "--verbose",
        help="Increase the debug output",
        action="count",
    )
    p.add_argument(
        "-q",
        "--quiet",
        help="Decrease the debug output",
        action="count",
    )
    p.add_argument(
        "--version", action="version", version="%(prog)s " + aiotuya.meta.version
    )

    subparsers = p.add_subparsers(required=True, dest="subcommand")

    discover = subparsers.add_parser(
        "discover",
        help="Listen for device announcements and print every device found",
    )
    discover.add_argument(
        "--count",
        help="Stop after this many distinct devices were found",
        type=int,
    )
    discover.add_argument(
        "--timeout",
        help="Stop after listening for this many seconds",
        type=float,
    )
    discover.add_argument(
        "--port",
        help="UDP port to listen on (default: %(default)s)",
        type=int,
        default=defaults.get_status_port(),
    )

    for name, helptext in (
        ("get", "Print the state of a device's data points as JSON"),
        ("set", "Change data points of a device"),
    ):
        sub = subparsers.add_parser(name, help=helptext)
        sub.add_argument(
            "address",
            help="Host name or IP address of the device, optionally followed by :PORT",
        )
        sub.add_argument("device_id", help="ID of the device (its gwId)")
        sub.add_argument(
            "--key",
            help="Local key of the device (default: the AIOTUYA_KEY environment variable)",
        )
        sub.add_argument(
            "--timeout",
            help="Seconds to wait for the device's response",
            type=float,
        )
        if name == "set":
            sub.add_argument(
                "dps",
                help="Data point assignment; values are parsed as JSON if possible, and taken as strings otherwise",
                metavar="DPS=VALUE",
                nargs="+",
                type=parse_data_point,
            )

    return p


def configure_logging(verbosity):
    logging.basicConfig()

    if verbosity <= -2:
        logging.getLogger("tuya").setLevel(logging.CRITICAL + 1)
    elif verbosity == -1:
        logging.getLogger("tuya").setLevel(logging.ERROR)
    elif verbosity == 0:
        logging.getLogger("tuya").setLevel(logging.WARNING)
    elif verbosity == 1:
        logging.getLogger("tuya").setLevel(logging.WARNING)
        logging.getLogger("tuya.aiotuya-client").setLevel(logging.INFO)
    elif verbosity == 2:
        logging.getLogger("tuya").setLevel(logging.INFO)
    else:
        logging.getLogger("tuya").setLevel(logging.DEBUG)


def format_status(status):
    host, port = status.address()
    return "%s at %s:%d (product %s, version %s%s)" % (
        status.device_id,
        host,
        port,
        status.product_key,
        status.version,
        ", encrypted" if status.encrypt else "",
    )


async def discover(options):
    seen = set()
    loop = asyncio.get_running_loop()
    deadline = None if options.timeout is None else loop.time() + options.timeout

    async with await StatusListener.create(port=options.port) as listener:
        log.info("Listening on port %d", listener.port)
        while options.count is None or len(seen) < options.count:
            if deadline is None:
                status = await listener.receive()
            else:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                try:
                    status = await asyncio.wait_for(listener.receive(), remaining)
                except asyncio.TimeoutError:
                    break

            if status.device_id in seen:
                continue
            seen.add(status.device_id)
            print(format_status(status))

    log.info("Found %d device(s)", len(seen))


async def connect(options):
    log.info("Connecting to %s", options.address)
    return await Device.connect(
        options.host, options.device_id, options.key, port=options.port
    )


async def get(options):
    async with await connect(options) as device:
        state = await device.get_state(timeout=options.timeout)
    print(json.dumps(state.to_json(), sort_keys=True))


async def set_(options):
    async with await connect(options) as device:
        await device.set_state(dict(options.dps), timeout=options.timeout)
    log.info("State updated")


async def main(args=None):
    p = build_parser()
    options = p.parse_args(sys.argv[1:] if args is None else args)

    configure_logging((options.verbose or 0) - (options.quiet or 0))

    if options.subcommand in ("get", "set"):
        try:
            options.host, options.port = hostportsplit(options.address)
        except ValueError as e:
            p.error(str(e))
        if options.host is None:
            p.error("No host given in %r" % options.address)

    handlers = {
        "discover": discover,
        "get": get,
        "set": set_,
    }

    try:
        await handlers[options.subcommand](options)
    except error.Error as e:
        print(str(e) or repr(e), file=sys.stderr)
        extra_help = e.extra_help()
        if extra_help:
            print("Debugging hint:", extra_help, file=sys.stderr)
        sys.exit(1)


def sync_main(args=None):
    asyncio.run(main(args=args))


if __name__ == "__main__":
    sync_main()
