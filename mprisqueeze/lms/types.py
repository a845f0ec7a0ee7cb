#!/usr/bin/env python3
"""
Shared data types, constants and exceptions for the LMS protocols

This module contains the data classes, enums and the exception hierarchy used
by the discovery client, the JSON-RPC client and the supervisor.
"""

import enum
from dataclasses import dataclass

# Discovery constants
DISCOVERY_PORT = 3483
DISCOVERY_BROADCAST = "255.255.255.255"
DISCOVERY_BUFSIZE = 1024

# Reply tags, in the order the server sends them. The reply starts with the
# packet type "E", read here as part of the first tag.
TAG_HOSTNAME = b"ENAME"
TAG_PORT = b"JSON"
TAG_UUID = b"UUID"
TAG_VERSION = b"VERS"

# Tags asked for in the discovery request, four bytes each
REQUEST_TAGS = (b"NAME", b"JSON", b"UUID", b"VERS")

# packet type "e" followed by every requested tag with an empty value
DISCOVERY_PROBE = b"e" + b"".join(tag + b"\x00" for tag in REQUEST_TAGS)

# JSON-RPC constants
DEFAULT_PORT = 9000
JSONRPC_PATH = "/jsonrpc.js"
JSONRPC_METHOD = "slim.request"


@dataclass(frozen=True)
class DiscoveryReply:
    """Answer of an LMS server to a discovery probe"""

    hostaddr: str
    hostname: str
    port: int
    uuid: str
    version: str


@dataclass(frozen=True)
class Player:
    """A player known by the LMS server"""

    name: str
    playerid: str


class Mode(enum.Enum):
    """playback mode of a player"""

    STOP = "stop"
    PLAY = "play"
    PAUSE = "pause"


class Shuffle(enum.Enum):
    """shuffle setting of a player playlist"""

    OFF = 0
    SONGS = 1
    ALBUMS = 2


def _seconds(duration: float) -> str:
    return "second" if duration == 1 else "seconds"


class MprisqueezeError(Exception):
    """Base exception for everything raised by mprisqueeze"""


class LmsError(MprisqueezeError):
    """Base exception for errors talking to the LMS server"""


class TransportError(LmsError):
    """The request or the discovery datagram could not be sent or received"""


class DecodeError(LmsError):
    """The bytes received are not what the protocol describes"""


class DiscoveryParseError(DecodeError):
    """A discovery reply could not be parsed"""


class ResultShapeError(LmsError):
    """The result of a response is not an object"""

    def __init__(self, result):
        super().__init__(f"The result field has the wrong type: {result!r}")
        self.result = result


class NoFieldError(LmsError):
    """The queried field is not in the result object"""

    def __init__(self, field: str, result):
        super().__init__(f"Unable to get field {field} in {result!r}")
        self.field = field
        self.result = result


class WrongTypeError(LmsError):
    """A field is present but its value cannot be converted"""


class DiscoveryTimeoutError(MprisqueezeError):
    """No LMS server answered before the discovery deadline"""

    def __init__(self, timeout: float):
        super().__init__(f"No LMS server found after {timeout} {_seconds(timeout)}")
        self.timeout = timeout


class PlayerNotAvailableError(MprisqueezeError):
    """The player did not show up on the LMS server in time"""

    def __init__(self, name: str, timeout: float):
        super().__init__(f"Player {name} not available after {timeout} {_seconds(timeout)}")
        self.name = name
        self.timeout = timeout


class PlayerProcessError(MprisqueezeError):
    """The player process could not be started"""


class PresentationError(MprisqueezeError):
    """The player could not be exposed on the bus"""


class PlayerExitedError(MprisqueezeError):
    """The player process ended"""

    def __init__(self, returncode: int | None, signum: int | None = None):
        if returncode is not None:
            message = f"Player exited with code {returncode}"
        elif signum is not None:
            message = f"Player exited without code (signal {signum})"
        else:
            message = "Player exited without code"
        super().__init__(message)
        self.returncode = returncode
        self.signum = signum


class PollingExitedError(MprisqueezeError):
    """The mode polling task ended"""

    def __init__(self, cause: BaseException | None = None):
        message = "Polling exited"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.cause = cause
