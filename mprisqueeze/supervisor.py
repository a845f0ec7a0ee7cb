#!/usr/bin/env python3
"""
Supervisor

Finds the LMS server, starts the player process, waits for the player to show
up on the server, exposes it on the bus and then watches three things: the
client error signal, the mode polling task and the player process. The first
one to fire ends the run. There is no successful way out: run() always raises.
"""

import asyncio
import enum
import logging
import typing as t

from mprisqueeze.availability import wait_for_player
from mprisqueeze.config import Settings
from mprisqueeze.lms.client import ErrorSignal, LmsClient
from mprisqueeze.lms.discovery import discover_server
from mprisqueeze.lms.types import (
    MprisqueezeError,
    PlayerExitedError,
    PollingExitedError,
    PresentationError,
)
from mprisqueeze.modepoll import ModeListener, poll_for_mode_changes
from mprisqueeze.mpris import start_dbus_server
from mprisqueeze.subprocesses import PlayerProcess


class Presentation(ModeListener, t.Protocol):
    """what the supervisor registers the player with"""

    async def close(self) -> None:
        """unregister"""


PresentationFactory = t.Callable[[LmsClient, str, str], t.Awaitable[Presentation]]


class State(enum.Enum):
    """where the supervisor is at"""

    INIT = "init"
    DISCOVERING = "discovering"
    LAUNCHING = "launching"
    WAITING = "waiting"
    RUNNING = "running"
    TERMINATING = "terminating"
    DONE = "done"


class Supervisor:  # pylint: disable=too-many-instance-attributes
    """tie the LMS client, the player process and the presentation together"""

    def __init__(
        self,
        settings: Settings,
        presentation_factory: PresentationFactory = start_dbus_server,
    ):
        self.settings = settings
        self.presentation_factory = presentation_factory
        self.state = State.INIT
        self.client: LmsClient | None = None
        self.process: PlayerProcess | None = None
        self.presentation: Presentation | None = None
        self.tasks: set[asyncio.Task] = set()

    def _transition(self, state: State) -> None:
        logging.debug("Supervisor %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self) -> t.NoReturn:
        """run until something fails, then raise what failed"""
        try:
            hostname, port = await self._server_address()
            self.client = LmsClient(
                hostname,
                port,
                keystyle=self.settings.keystyle,
                errors=ErrorSignal(self.settings.error_grace),
            )

            self._transition(State.LAUNCHING)
            self.process = PlayerProcess(self.settings.player_command, list(self.settings.player_args))
            await self.process.start(self.settings.player_name, hostname)

            self._transition(State.WAITING)
            playerid = await wait_for_player(
                self.client, self.settings.player_name, self.settings.player_timeout
            )

            self._transition(State.RUNNING)
            self.presentation = await self._present(playerid)
            raise await self._race(playerid)
        finally:
            await self._terminate()

    async def _server_address(self) -> tuple[str, int]:
        if self.settings.hostname:
            return self.settings.hostname, self.settings.port

        self._transition(State.DISCOVERING)
        reply = await discover_server(
            self.settings.discovery_attempt_timeout, self.settings.discovery_timeout
        )
        return reply.hostaddr, reply.port

    async def _present(self, playerid: str) -> Presentation:
        """register the player, failures end up as PresentationError"""
        try:
            return await self.presentation_factory(
                self.client, self.settings.player_name, playerid
            )
        except MprisqueezeError:
            raise
        except Exception as error:  # pylint: disable=broad-exception-caught
            raise PresentationError(f"Unable to expose player {playerid}: {error}") from error

    async def _race(self, playerid: str) -> MprisqueezeError:
        """wait for the first of: client error, polling end, player exit"""
        error_task = asyncio.create_task(self.client.errors.get())
        poll_task = asyncio.create_task(
            poll_for_mode_changes(
                self.presentation, self.client, playerid, self.settings.poll_interval
            )
        )
        exit_task = asyncio.create_task(self.process.wait())
        self.tasks.update((error_task, poll_task, exit_task))

        done, _pending = await asyncio.wait(self.tasks, return_when=asyncio.FIRST_COMPLETED)

        if error_task in done:
            error = error_task.result()
            logging.error("LMS client error: %s", error)
            return error

        if poll_task in done:
            cause = None if poll_task.cancelled() else poll_task.exception()
            logging.error("Polling exited: %s", cause)
            return PollingExitedError(cause)

        returncode, signum = exit_task.result()
        logging.error("Player exited with code %s (signal %s)", returncode, signum)
        return PlayerExitedError(returncode, signum)

    async def _terminate(self) -> None:
        self._transition(State.TERMINATING)

        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()

        if self.process:
            await self.process.terminate()

        if self.presentation:
            try:
                await self.presentation.close()
            except Exception as error:  # pylint: disable=broad-exception-caught
                logging.debug("Error closing the presentation: %s", error)
            self.presentation = None

        if self.client:
            await self.client.close()

        self._transition(State.DONE)
