#!/usr/bin/env python3
''' wait for the player to show up on the LMS server '''

import asyncio
import logging

from mprisqueeze.lms.client import LmsClient
from mprisqueeze.lms.types import PlayerNotAvailableError

DEFAULT_INTERVAL = 0.0


async def _find_player(client: LmsClient, name: str, interval: float) -> str:
    ''' poll the player list until name is in it '''
    while True:
        players = await client.get_players()
        for player in players:
            if player.name == name:
                logging.info('Player %s is available with id %s', name, player.playerid)
                return player.playerid
        logging.debug('Player %s not there yet, known players: %s', name,
                      [player.name for player in players])
        await asyncio.sleep(interval)


async def wait_for_player(client: LmsClient,
                          name: str,
                          timeout: float,
                          interval: float = DEFAULT_INTERVAL) -> str:
    ''' return the id of the player called name

        the round trips set the pace, interval adds a pause between them.
        client errors are not retried, they end the wait '''
    logging.info('Waiting for player %s', name)
    try:
        return await asyncio.wait_for(_find_player(client, name, interval), timeout)
    except asyncio.TimeoutError as err:
        raise PlayerNotAvailableError(name, timeout) from err
