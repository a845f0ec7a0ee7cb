#!/usr/bin/env python3
"""
Logitech Media Server package

Discovery of the server on the local network and the client of its JSON-RPC
API.
"""

from .client import ErrorSignal, LmsClient
from .discovery import discover, discover_server, parse_reply
from .request import KeyStyle, LmsRequest
from .types import DiscoveryReply, LmsError, Mode, Player, Shuffle

__all__ = [
    "DiscoveryReply",
    "ErrorSignal",
    "KeyStyle",
    "LmsClient",
    "LmsError",
    "LmsRequest",
    "Mode",
    "Player",
    "Shuffle",
    "discover",
    "discover_server",
    "parse_reply",
]
