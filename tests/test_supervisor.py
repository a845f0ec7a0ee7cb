#!/usr/bin/env python3
"""Tests for the supervisor"""
# pylint: disable=redefined-outer-name

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from mprisqueeze.config import Settings
from mprisqueeze.lms.request import KeyStyle
from mprisqueeze.lms.types import (
    DiscoveryReply,
    DiscoveryTimeoutError,
    Mode,
    PlayerExitedError,
    PlayerNotAvailableError,
    PlayerProcessError,
    PollingExitedError,
    PresentationError,
    TransportError,
)
from mprisqueeze.supervisor import State, Supervisor

SQUEEZELITE = {"count": 1, "players_loop": [{"name": "SqueezeLite", "playerid": "abc"}]}
SLEEPER = ("-c", "import time; time.sleep(60)", "{name}", "{server}")


def make_settings(args, **kwargs):
    """settings pointing at the fake LMS server and running python as the player"""
    values = {
        "hostname": "lms.local",
        "port": 9000,
        "keystyle": KeyStyle.AUTO,
        "player_command": sys.executable,
        "player_args": tuple(args),
        "player_timeout": 5.0,
        "poll_interval": 0.01,
        "error_grace": 0.1,
    }
    values.update(kwargs)
    return Settings(**values)


@pytest.fixture
def presentation():
    """stands in for the dbus server"""
    fake = MagicMock()
    fake.playback_status_changed = AsyncMock()
    fake.close = AsyncMock()
    return fake


@pytest.fixture
def factory(presentation):
    """presentation factory returning the fake"""
    return AsyncMock(return_value=presentation)


@pytest.mark.asyncio
async def test_player_exit(fake_lms, presentation, factory):
    """the player exiting ends the run with its exit code"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    fake_lms.answer(["mode", "?"], {"_mode": "play"})
    settings = make_settings(
        ("-c", "import time, sys; time.sleep(0.5); sys.exit(2)", "{name}", "{server}"),
        poll_interval=60,
    )
    supervisor = Supervisor(settings, presentation_factory=factory)

    with pytest.raises(PlayerExitedError) as excinfo:
        await supervisor.run()

    assert excinfo.value.returncode == 2
    assert excinfo.value.signum is None
    assert supervisor.state == State.DONE
    assert supervisor.process.returncode == 2
    factory.assert_awaited_once_with(supervisor.client, "SqueezeLite", "abc")
    presentation.close.assert_awaited_once()
    assert not supervisor.tasks


@pytest.mark.asyncio
async def test_player_killed(fake_lms, factory):
    """a player ended by a signal has no exit code"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    settings = make_settings(
        ("-c", "import os, signal, time; time.sleep(0.5); os.kill(os.getpid(), signal.SIGKILL)",
         "{name}", "{server}"),
        poll_interval=60,
    )
    supervisor = Supervisor(settings, presentation_factory=factory)

    with pytest.raises(PlayerExitedError) as excinfo:
        await supervisor.run()

    assert excinfo.value.returncode is None
    assert excinfo.value.signum == 9
    assert "without code" in str(excinfo.value)


@pytest.mark.asyncio
async def test_client_error_ends_run(fake_lms, presentation, factory):
    """a failed poll surfaces through the error signal and the player is stopped"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    fake_lms.answer(["mode", "?"], aiohttp.ClientConnectionError("connection refused"))
    supervisor = Supervisor(make_settings(SLEEPER), presentation_factory=factory)

    with pytest.raises(TransportError):
        await supervisor.run()

    assert supervisor.state == State.DONE
    assert supervisor.process.returncode is not None
    assert supervisor.process.returncode < 0
    presentation.playback_status_changed.assert_not_awaited()
    presentation.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_polling_exit_ends_run(fake_lms, presentation, factory):
    """the presentation failing stops the poller, which ends the run"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    fake_lms.answer(["mode", "?"], {"_mode": "play"})
    presentation.playback_status_changed.side_effect = RuntimeError("bus gone")
    supervisor = Supervisor(make_settings(SLEEPER), presentation_factory=factory)

    with pytest.raises(PollingExitedError) as excinfo:
        await supervisor.run()

    assert isinstance(excinfo.value.cause, RuntimeError)
    assert supervisor.process.returncode < 0


@pytest.mark.asyncio
async def test_mode_changes_are_forwarded(fake_lms, presentation, factory):
    """the poller notifies the presentation while the player runs"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    fake_lms.sequence(["mode", "?"], [{"_mode": "stop"}, {"_mode": "play"}])
    settings = make_settings(
        ("-c", "import time, sys; time.sleep(1); sys.exit(0)", "{name}", "{server}"),
    )
    supervisor = Supervisor(settings, presentation_factory=factory)

    with pytest.raises(PlayerExitedError) as excinfo:
        await supervisor.run()

    assert excinfo.value.returncode == 0
    assert presentation.playback_status_changed.await_count == 2


@pytest.mark.asyncio
async def test_player_not_available(fake_lms, factory):
    """the player never registers"""
    fake_lms.answer(["players", "0"], {"count": 0, "players_loop": []})
    supervisor = Supervisor(make_settings(SLEEPER, player_timeout=0.3), presentation_factory=factory)

    with pytest.raises(PlayerNotAvailableError) as excinfo:
        await supervisor.run()

    assert excinfo.value.timeout == 0.3
    assert supervisor.process.returncode < 0
    factory.assert_not_awaited()
    assert supervisor.state == State.DONE


@pytest.mark.asyncio
async def test_invalid_player_args(fake_lms, factory):
    """nothing is started or asked when a placeholder is missing"""
    supervisor = Supervisor(
        make_settings(("-c", "pass", "{name}")), presentation_factory=factory
    )

    with pytest.raises(PlayerProcessError):
        await supervisor.run()

    assert not fake_lms.requests
    assert not supervisor.process.running()
    factory.assert_not_awaited()


@pytest.mark.asyncio
async def test_discovery(fake_lms, factory):
    """without a hostname the server is discovered and its address handed to the player"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    reply = DiscoveryReply(
        hostaddr="lms.local", hostname="myhostname", port=9000, uuid="uuid", version="8.3.1"
    )
    settings = make_settings(
        (
            "-c",
            "import sys, time; time.sleep(0.5); sys.exit(0 if sys.argv[2] == 'lms.local' else 3)",
            "{name}",
            "{server}",
        ),
        hostname="",
        port=1234,
        poll_interval=60,
    )
    supervisor = Supervisor(settings, presentation_factory=factory)

    with patch("mprisqueeze.supervisor.discover_server", new=AsyncMock(return_value=reply)) as disc:
        with pytest.raises(PlayerExitedError) as excinfo:
            await supervisor.run()

    disc.assert_awaited_once_with(settings.discovery_attempt_timeout, settings.discovery_timeout)
    assert excinfo.value.returncode == 0
    assert supervisor.client.url == "http://lms.local:9000/jsonrpc.js"


@pytest.mark.asyncio
async def test_discovery_timeout(factory):
    """no server, no player"""
    settings = make_settings(SLEEPER, hostname="")
    supervisor = Supervisor(settings, presentation_factory=factory)

    with patch(
        "mprisqueeze.supervisor.discover_server",
        new=AsyncMock(side_effect=DiscoveryTimeoutError(10.0)),
    ):
        with pytest.raises(DiscoveryTimeoutError):
            await supervisor.run()

    assert supervisor.process is None
    assert supervisor.client is None
    assert supervisor.state == State.DONE


@pytest.mark.asyncio
async def test_presentation_close_failure_is_ignored(fake_lms, presentation, factory):
    """termination goes on when the presentation cannot be closed"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    fake_lms.answer(["mode", "?"], {"_mode": Mode.PLAY.value})
    presentation.close.side_effect = RuntimeError("already gone")
    settings = make_settings(
        ("-c", "import sys; sys.exit(1)", "{name}", "{server}"), poll_interval=60
    )
    supervisor = Supervisor(settings, presentation_factory=factory)

    with pytest.raises(PlayerExitedError):
        await supervisor.run()
    assert supervisor.state == State.DONE


@pytest.mark.asyncio
async def test_presentation_failure_stops_player(fake_lms, factory):
    """the player is stopped when it cannot be exposed"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    factory.side_effect = PresentationError("no bus")
    supervisor = Supervisor(make_settings(SLEEPER), presentation_factory=factory)

    with pytest.raises(PresentationError):
        await supervisor.run()

    assert supervisor.process.returncode < 0
    assert supervisor.presentation is None
    assert supervisor.state == State.DONE


@pytest.mark.asyncio
async def test_presentation_failure_is_wrapped(fake_lms, factory):
    """foreign errors from the presentation factory keep their cause"""
    fake_lms.answer(["players", "0"], SQUEEZELITE)
    factory.side_effect = ValueError("no session bus")
    supervisor = Supervisor(make_settings(SLEEPER), presentation_factory=factory)

    with pytest.raises(PresentationError) as excinfo:
        await supervisor.run()

    assert isinstance(excinfo.value.__cause__, ValueError)
    assert "abc" in str(excinfo.value)
    assert supervisor.process.returncode < 0
