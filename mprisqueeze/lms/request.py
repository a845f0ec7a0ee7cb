#!/usr/bin/env python3
"""
Requests sent to the LMS server

The requests available are described in the LMS CLI documentation
(Help / Technical Information / The Logitech Media Server Command Line
Interface on any running server). Each constructor returns the request and,
for the ones that read something, the field of the result holding the answer.
"""

import enum
from dataclasses import dataclass, field

from .types import JSONRPC_METHOD


class KeyStyle(enum.Enum):
    """How the answer to a `<attribute> ?` query is named in the result

    Depending on the server version the answer to `mode ?` comes back as
    `_mode` or as `mode`.
    """

    UNDERSCORE = "underscore"
    PLAIN = "plain"
    AUTO = "auto"


@dataclass(frozen=True)
class ResultField:
    """Name of the field holding the answer to a request"""

    name: str
    question: bool = False

    def candidates(self, keystyle: KeyStyle) -> list[str]:
        """the keys to look for, in order"""
        if not self.question or keystyle == KeyStyle.PLAIN:
            return [self.name]
        if keystyle == KeyStyle.UNDERSCORE:
            return [f"_{self.name}"]
        return [f"_{self.name}", self.name]


@dataclass
class LmsRequest:
    """This structure is serialized to JSON and sent to the LMS server"""

    target: str = ""
    tokens: list[str] = field(default_factory=list)
    method: str = JSONRPC_METHOD

    def to_json(self) -> dict:
        """body of the HTTP request"""
        return {"method": self.method, "params": [self.target, list(self.tokens)]}

    def add_param(self, param: str) -> "LmsRequest":
        """append a token"""
        self.tokens.append(param)
        return self

    def question(self, key: str) -> tuple["LmsRequest", ResultField]:
        """ask for the value of key"""
        return self.add_param(key).add_param("?"), ResultField(key, question=True)

    @classmethod
    def playlist(cls, target: str) -> "LmsRequest":
        """start a playlist request"""
        return cls(target).add_param("playlist")

    @classmethod
    def version(cls) -> tuple["LmsRequest", ResultField]:
        """server version"""
        return cls().question("version")

    @classmethod
    def connected(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """is the player connected"""
        return cls(target).question("connected")

    @classmethod
    def players(cls) -> "LmsRequest":
        """players known by the server, starting at index 0"""
        return cls().add_param("players").add_param("0")

    @classmethod
    def players_loop(cls) -> tuple["LmsRequest", ResultField]:
        """the list of the players"""
        return cls.players(), ResultField("players_loop")

    @classmethod
    def players_count(cls) -> tuple["LmsRequest", ResultField]:
        """the number of players"""
        return cls.players(), ResultField("count")

    @classmethod
    def artist(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """artist of the current track"""
        return cls(target).question("artist")

    @classmethod
    def title(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """title of the current track"""
        return cls(target).question("title")

    @classmethod
    def album(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """album of the current track"""
        return cls(target).question("album")

    @classmethod
    def mode(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """play, stop or pause"""
        return cls(target).question("mode")

    @classmethod
    def shuffle(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """shuffle setting of the playlist"""
        return cls.playlist(target).question("shuffle")

    @classmethod
    def index(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """index of the current track in the playlist"""
        return cls.playlist(target).question("index")

    @classmethod
    def track_count(cls, target: str) -> tuple["LmsRequest", ResultField]:
        """number of tracks in the playlist"""
        return cls.playlist(target).question("tracks")

    @classmethod
    def play(cls, target: str) -> "LmsRequest":
        """start playing"""
        return cls(target).add_param("play")

    @classmethod
    def stop(cls, target: str) -> "LmsRequest":
        """stop playing"""
        return cls(target).add_param("stop")

    @classmethod
    def pause(cls, target: str) -> "LmsRequest":
        """pause, does nothing when already paused"""
        return cls(target).add_param("pause").add_param("1")

    @classmethod
    def play_pause(cls, target: str) -> "LmsRequest":
        """toggle between play and pause"""
        return cls(target).add_param("pause")

    @classmethod
    def previous(cls, target: str) -> "LmsRequest":
        """previous track"""
        return cls.playlist(target).add_param("index").add_param("-1")

    @classmethod
    def next(cls, target: str) -> "LmsRequest":
        """next track"""
        return cls.playlist(target).add_param("index").add_param("+1")
