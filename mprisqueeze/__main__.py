#!/usr/bin/env python3
''' mprisqueeze as run via python -m '''

import argparse
import asyncio
import dataclasses
import logging
import platform
import sys

import mprisqueeze
import mprisqueeze.bootstrap
import mprisqueeze.config
import mprisqueeze.supervisor
from mprisqueeze.lms.types import MprisqueezeError

LOGLEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ''' command line options, they win over the config file '''
    parser = argparse.ArgumentParser(
        prog='mprisqueeze',
        description='Control squeezelite via MPRIS',
        epilog='Anything after -- is the player command line. '
        '{name} and {server} are replaced by the player name and the server address.')
    parser.add_argument('-c', '--config', help='configuration file')
    parser.add_argument('-H', '--hostname', help='LMS server, discovered when not set')
    parser.add_argument('-P', '--port', type=int, help='LMS JSON-RPC port')
    parser.add_argument('-p', '--player-name', help='name of the player')
    parser.add_argument('-t',
                        '--timeout',
                        type=float,
                        help='seconds to wait for the player to show up on the server')
    parser.add_argument('-l', '--loglevel', choices=LOGLEVELS, help='log level')
    parser.add_argument('--logdir', help='also log to a rotating file in this directory')
    parser.add_argument('player', nargs=argparse.REMAINDER, help='player command and arguments')
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace,
                   config: mprisqueeze.config.ConfigFile) -> mprisqueeze.config.Settings:
    ''' config file values, overridden by the command line '''
    settings = config.settings()
    overrides = {}
    if args.hostname:
        overrides['hostname'] = args.hostname
    if args.port is not None:
        overrides['port'] = args.port
    if args.player_name:
        overrides['player_name'] = args.player_name
    if args.timeout is not None:
        overrides['player_timeout'] = args.timeout
    if args.loglevel:
        overrides['loglevel'] = args.loglevel

    player = list(args.player)
    if player and player[0] == '--':
        player = player[1:]
    if player:
        overrides['player_command'] = player[0]
        overrides['player_args'] = tuple(player[1:])
    return dataclasses.replace(settings, **overrides)


def main(argv: list[str] | None = None) -> int:
    ''' entrypoint '''
    args = parse_args(argv)
    mprisqueeze.bootstrap.setuplogging(logdir=args.logdir, loglevel=args.loglevel or 'INFO')

    config = mprisqueeze.config.ConfigFile(configfile=args.config)
    settings = build_settings(args, config)
    logging.getLogger().setLevel(settings.loglevel.upper())
    logging.info('starting up v%s on %s', mprisqueeze.__version__, platform.platform())

    supervisor = mprisqueeze.supervisor.Supervisor(settings)
    try:
        asyncio.run(supervisor.run())
    except MprisqueezeError as error:
        logging.error('%s', error)
        return 1
    except KeyboardInterrupt:
        logging.info('Interrupted')
        return 130
    return 1


if __name__ == '__main__':
    sys.exit(main())
