#!/usr/bin/env python3
''' poll the LMS server for mode changes '''

import asyncio
import logging
import typing as t

from mprisqueeze.lms.client import LmsClient
from mprisqueeze.lms.types import LmsError, Mode

DEFAULT_INTERVAL = 0.5


class ModeListener(t.Protocol):  # pylint: disable=too-few-public-methods
    ''' what gets told about mode changes '''

    async def playback_status_changed(self) -> None:
        ''' the playback status is not the same anymore '''


async def poll_for_mode_changes(presentation: ModeListener,
                                client: LmsClient,
                                playerid: str,
                                interval: float = DEFAULT_INTERVAL) -> None:
    ''' notify presentation once per mode change, forever '''
    last_mode: Mode | None = None

    while True:
        await asyncio.sleep(interval)

        try:
            current_mode = await client.get_mode(playerid)
        except LmsError:
            # already reported via the client's error signal
            continue

        if current_mode == last_mode:
            continue

        logging.info('Mode changed to %s, emitting PropertiesChanged', current_mode.name)
        last_mode = current_mode
        await presentation.playback_status_changed()
