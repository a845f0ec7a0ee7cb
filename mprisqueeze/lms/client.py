#!/usr/bin/env python3
"""
The functions to talk to the LMS server

LMS accepts and returns JSON data. The requests are created with the
constructors of mprisqueeze.lms.request.LmsRequest, the answers are picked out
of the `result` object by the as_* extractors below.
"""

import asyncio
import contextlib
import ipaddress
import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import aiohttp

from .request import KeyStyle, LmsRequest, ResultField
from .types import (
    DEFAULT_PORT,
    JSONRPC_PATH,
    DecodeError,
    LmsError,
    Mode,
    NoFieldError,
    Player,
    ResultShapeError,
    Shuffle,
    TransportError,
    WrongTypeError,
)

T = TypeVar("T")

SHUFFLE_VALUES = {"0": Shuffle.OFF, "1": Shuffle.SONGS, "2": Shuffle.ALBUMS}
MODE_VALUES = {"stop": Mode.STOP, "play": Mode.PLAY, "pause": Mode.PAUSE}


class ErrorSignal:
    """Channel reporting client failures to a single observer

    It holds at most one error. Reporting while one is pending waits for the
    observer to take it. The wait lasts at most `grace` seconds (None: no
    limit), after which the new error is dropped in favor of the pending one.
    """

    def __init__(self, grace: float | None = 5.0):
        self.grace = grace
        self.queue: asyncio.Queue[Exception] = asyncio.Queue(maxsize=1)

    async def report(self, error: Exception) -> None:
        """hand error over to the observer"""
        try:
            await asyncio.wait_for(self.queue.put(error), self.grace)
        except asyncio.TimeoutError:
            logging.warning("An earlier error is still pending, not reporting: %s", error)

    async def get(self) -> Exception:
        """wait for the next error"""
        return await self.queue.get()

    def pending(self) -> bool:
        """is an error waiting for the observer"""
        return not self.queue.empty()


@dataclass
class LmsResponse:
    """The response sent by LMS. The actual payload is in result."""

    method: str
    params: tuple[str, list[str]]
    result: Any

    @classmethod
    def from_json(cls, body: Any) -> "LmsResponse":
        """validate the decoded body"""
        if not isinstance(body, dict):
            raise DecodeError(f"Response is not an object: {body!r}")

        try:
            method = body["method"]
            params = body["params"]
            result = body["result"]
        except KeyError as err:
            raise DecodeError(f"Missing {err} in response: {body!r}") from err

        if not isinstance(method, str):
            raise DecodeError(f"Wrong method in response: {method!r}")
        if (
            not isinstance(params, list)
            or len(params) != 2
            or not isinstance(params[0], str)
            or not isinstance(params[1], list)
            or not all(isinstance(param, str) for param in params[1])
        ):
            raise DecodeError(f"Wrong params in response: {params!r}")

        return cls(method=method, params=(params[0], params[1]), result=result)


def result_field(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> Any:
    """get the value answering the request"""
    result = response.result
    if not isinstance(result, dict):
        raise ResultShapeError(result)

    for key in field.candidates(keystyle):
        if key in result:
            return result[key]
    raise NoFieldError(field.name, result)


def as_bool(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> bool:
    """booleans are sent as 0 or 1"""
    value = result_field(response, field, keystyle)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    raise WrongTypeError(f"Wrong top level type for bool: {value!r}")


def as_count(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> int:
    """non-negative integer, sometimes sent as a string"""
    value = result_field(response, field, keystyle)
    if isinstance(value, str):
        if value.isascii() and value.isdigit():
            return int(value)
        raise WrongTypeError(f"{value!r} is not an unsigned integer")
    if isinstance(value, int) and not isinstance(value, bool):
        if value >= 0:
            return value
        raise WrongTypeError(f"{value} is not an unsigned integer")
    raise WrongTypeError(f"Wrong top level type for unsigned integer: {value!r}")


def as_string(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> str:
    """plain string"""
    value = result_field(response, field, keystyle)
    if isinstance(value, str):
        return value
    raise WrongTypeError(f"Wrong top level type for string: {value!r}")


def as_string_or_none(
    response: LmsResponse, field: ResultField, keystyle: KeyStyle
) -> str | None:
    """string, None when the field is not there at all"""
    try:
        return as_string(response, field, keystyle)
    except NoFieldError:
        return None


def as_mode(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> Mode:
    """stop, play or pause"""
    value = result_field(response, field, keystyle)
    if not isinstance(value, str):
        raise WrongTypeError(f"Wrong top level type for mode: {value!r}")
    try:
        return MODE_VALUES[value]
    except KeyError as err:
        raise WrongTypeError(f"Expected stop, play or pause, got {value}") from err


def as_shuffle(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> Shuffle:
    """0, 1 or 2, as a string or as a number"""
    value = result_field(response, field, keystyle)
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    elif not isinstance(value, str):
        raise WrongTypeError(f"Wrong top level type for shuffle: {value!r}")
    try:
        return SHUFFLE_VALUES[value]
    except KeyError as err:
        raise WrongTypeError(f"Expected 0, 1 or 2, got {value}") from err


def as_players(response: LmsResponse, field: ResultField, keystyle: KeyStyle) -> list[Player]:
    """players_loop entries, only name and playerid are kept"""
    value = result_field(response, field, keystyle)
    if not isinstance(value, list):
        raise WrongTypeError(f"Wrong top level type for players: {value!r}")

    players = []
    for entry in value:
        if not isinstance(entry, dict):
            raise WrongTypeError(f"Wrong type for player: {entry!r}")
        name = entry.get("name")
        playerid = entry.get("playerid")
        if not isinstance(name, str) or not isinstance(playerid, str):
            raise WrongTypeError(f"Player without name or playerid: {entry!r}")
        players.append(Player(name=name, playerid=playerid))
    return players


def format_host_for_url(host: str) -> str:
    """wrap IPv6 addresses in brackets"""
    if host.startswith("[") and host.endswith("]"):
        return host

    with contextlib.suppress(ValueError):
        if isinstance(ipaddress.ip_address(host), ipaddress.IPv6Address):
            return f"[{host}]"
    return host


class LmsClient:  # pylint: disable=too-many-public-methods
    """Client of the JSON-RPC API of one LMS server

    Every failure is raised to the caller and also reported once on
    self.errors.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        hostname: str,
        port: int = DEFAULT_PORT,
        keystyle: KeyStyle = KeyStyle.AUTO,
        timeout: float = 10.0,
        errors: ErrorSignal | None = None,
    ):
        self.url = f"http://{format_host_for_url(hostname)}:{port}{JSONRPC_PATH}"
        self.keystyle = keystyle
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.errors = errors or ErrorSignal()
        self.session: aiohttp.ClientSession | None = None

    async def close(self) -> None:
        """release the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def get_version(self) -> str:
        """version of the server"""
        request, field = LmsRequest.version()
        return await self._query(request, field, as_string)

    async def get_connected(self, playerid: str) -> bool:
        """is the player connected to the server"""
        request, field = LmsRequest.connected(playerid)
        return await self._query(request, field, as_bool)

    async def get_player_count(self) -> int:
        """number of players known by the server"""
        request, field = LmsRequest.players_count()
        return await self._query(request, field, as_count)

    async def get_players(self) -> list[Player]:
        """players known by the server"""
        request, field = LmsRequest.players_loop()
        return await self._query(request, field, as_players)

    async def get_index(self, playerid: str) -> int:
        """index of the current track"""
        request, field = LmsRequest.index(playerid)
        return await self._query(request, field, as_count)

    async def get_track_count(self, playerid: str) -> int:
        """number of tracks in the playlist"""
        request, field = LmsRequest.track_count(playerid)
        return await self._query(request, field, as_count)

    async def get_shuffle(self, playerid: str) -> Shuffle:
        """shuffle setting"""
        request, field = LmsRequest.shuffle(playerid)
        return await self._query(request, field, as_shuffle)

    async def get_mode(self, playerid: str) -> Mode:
        """playback mode"""
        request, field = LmsRequest.mode(playerid)
        return await self._query(request, field, as_mode)

    # When the playlist is empty or when listening to a remote stream, the
    # field is not in the result at all.
    async def get_artist(self, playerid: str) -> str | None:
        """artist of the current track"""
        request, field = LmsRequest.artist(playerid)
        return await self._query(request, field, as_string_or_none)

    async def get_title(self, playerid: str) -> str | None:
        """title of the current track"""
        request, field = LmsRequest.title(playerid)
        return await self._query(request, field, as_string_or_none)

    async def get_album(self, playerid: str) -> str | None:
        """album of the current track"""
        request, field = LmsRequest.album(playerid)
        return await self._query(request, field, as_string_or_none)

    async def play(self, playerid: str) -> None:
        """start playing"""
        await self._command(LmsRequest.play(playerid))

    async def stop(self, playerid: str) -> None:
        """stop playing"""
        await self._command(LmsRequest.stop(playerid))

    async def pause(self, playerid: str) -> None:
        """pause"""
        await self._command(LmsRequest.pause(playerid))

    async def play_pause(self, playerid: str) -> None:
        """toggle play/pause"""
        await self._command(LmsRequest.play_pause(playerid))

    async def previous(self, playerid: str) -> None:
        """previous track"""
        await self._command(LmsRequest.previous(playerid))

    async def next(self, playerid: str) -> None:
        """next track"""
        await self._command(LmsRequest.next(playerid))

    async def _query(
        self,
        request: LmsRequest,
        field: ResultField,
        convert: Callable[[LmsResponse, ResultField, KeyStyle], T],
    ) -> T:
        try:
            response = await self._post(request)
            value = convert(response, field, self.keystyle)
        except LmsError as err:
            await self.errors.report(err)
            raise
        logging.debug("Converted as: %r", value)
        return value

    async def _command(self, request: LmsRequest) -> None:
        try:
            await self._post(request)
        except LmsError as err:
            await self.errors.report(err)
            raise

    async def _post(self, request: LmsRequest) -> LmsResponse:
        logging.debug("Sending: %s", request)
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

        try:
            async with self.session.post(self.url, json=request.to_json()) as response:  # pylint: disable=not-async-context-manager
                response.raise_for_status()
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise TransportError(f"Request to {self.url} failed: {err!r}") from err
        except ValueError as err:
            raise DecodeError(f"Response from {self.url} is not JSON: {err}") from err

        logging.debug("Received: %s", body)
        return LmsResponse.from_json(body)
