#!/usr/bin/env python3
"""
LMS server discovery

The LMS server can be discovered by sending a broadcast UDP packet to port
3483. Example of an answer:

    b"ENAME\\x10myhostnameJSON\\x049000UUID$e9b557b8-...VERS\\x058.3.1"

Each value starts with a tag, followed by the length of the value in one byte,
then the value itself in the next length bytes.
"""

import asyncio
import logging

from .types import (
    DISCOVERY_BROADCAST,
    DISCOVERY_PORT,
    DISCOVERY_PROBE,
    TAG_HOSTNAME,
    TAG_PORT,
    TAG_UUID,
    TAG_VERSION,
    DiscoveryParseError,
    DiscoveryReply,
    DiscoveryTimeoutError,
    TransportError,
)


def unpack_field(data: bytes, tag: bytes, offset: int = 0) -> tuple[str, int]:
    """Unpack one tag/length/value field starting at offset"""
    end = offset + len(tag)
    if data[offset:end] != tag:
        raise DiscoveryParseError(f"Expected tag {tag!r} at offset {offset}")

    if len(data) < end + 1:
        raise DiscoveryParseError(f"Insufficient data for {tag!r} length")
    length = data[end]
    start = end + 1

    if len(data) < start + length:
        raise DiscoveryParseError(f"Insufficient data for {tag!r} value")

    try:
        value = data[start : start + length].decode("utf-8")
    except UnicodeDecodeError as err:
        raise DiscoveryParseError(f"{tag!r} value is not valid UTF-8") from err
    return value, start + length


def parse_port(value: str) -> int:
    """Convert the JSON field to a port number"""
    if not value.isascii() or not value.isdigit():
        raise DiscoveryParseError(f"Port {value!r} is not a number")
    port = int(value)
    if port > 0xFFFF:
        raise DiscoveryParseError(f"Port {port} is out of range")
    return port


def parse_reply(data: bytes, hostaddr: str) -> DiscoveryReply:
    """Parse a discovery reply. Trailing bytes are ignored."""
    hostname, offset = unpack_field(data, TAG_HOSTNAME)
    port_str, offset = unpack_field(data, TAG_PORT, offset)
    uuid, offset = unpack_field(data, TAG_UUID, offset)
    version, offset = unpack_field(data, TAG_VERSION, offset)

    return DiscoveryReply(
        hostaddr=hostaddr,
        hostname=hostname,
        port=parse_port(port_str),
        uuid=uuid,
        version=version,
    )


class DiscoveryProtocol(asyncio.DatagramProtocol):
    """Protocol class for UDP discovery, queues what it receives"""

    def __init__(self):
        self.received: asyncio.Queue[tuple[bytes, str] | Exception] = asyncio.Queue()

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        logging.debug("Received %d bytes from %s", len(data), addr)
        self.received.put_nowait((data, addr[0]))

    def error_received(self, exc: Exception) -> None:
        self.received.put_nowait(exc)


async def discover(attempt_timeout: float) -> DiscoveryReply:
    """Discover the LMS server on the local network

    Probe again every attempt_timeout seconds until something answers. There
    is no overall deadline here, see discover_server.
    """
    logging.info("Discovering LMS server on the local network")
    loop = asyncio.get_running_loop()

    try:
        transport, protocol = await loop.create_datagram_endpoint(
            DiscoveryProtocol, local_addr=("0.0.0.0", 0), allow_broadcast=True
        )
    except OSError as err:
        raise TransportError(f"Unable to open discovery socket: {err}") from err

    try:
        while True:
            transport.sendto(DISCOVERY_PROBE, (DISCOVERY_BROADCAST, DISCOVERY_PORT))
            try:
                received = await asyncio.wait_for(protocol.received.get(), attempt_timeout)
            except asyncio.TimeoutError:
                logging.info("No answer after %s seconds, retrying", attempt_timeout)
                continue

            if isinstance(received, Exception):
                raise TransportError(f"Discovery failed: {received}") from received

            data, hostaddr = received
            reply = parse_reply(data, hostaddr)
            logging.info(
                "Found LMS server: %s:%s (%s, version %s)",
                reply.hostaddr,
                reply.port,
                reply.hostname,
                reply.version,
            )
            return reply
    finally:
        transport.close()


async def discover_server(attempt_timeout: float, timeout: float) -> DiscoveryReply:
    """discover with an overall deadline"""
    try:
        return await asyncio.wait_for(discover(attempt_timeout), timeout)
    except asyncio.TimeoutError as err:
        raise DiscoveryTimeoutError(timeout) from err
