#!/usr/bin/env python3
''' handle the player process started alongside the bridge '''

import asyncio
import logging

from mprisqueeze.lms.types import PlayerProcessError

NAME_PLACEHOLDER = '{name}'
SERVER_PLACEHOLDER = '{server}'
TERMINATE_TIMEOUT = 5.0


def validate_args(args: list[str]) -> None:
    ''' both placeholders must be somewhere in the arguments '''
    for placeholder in (NAME_PLACEHOLDER, SERVER_PLACEHOLDER):
        if not any(placeholder in arg for arg in args):
            raise PlayerProcessError(f'{placeholder} is missing from the player arguments {args}')


def substitute_args(args: list[str], name: str, server: str) -> list[str]:
    ''' replace the placeholders '''
    return [arg.replace(NAME_PLACEHOLDER, name).replace(SERVER_PLACEHOLDER, server) for arg in args]


class PlayerProcess:
    ''' manage the player subprocess '''

    def __init__(self, command: str, args: list[str]):
        self.command = command
        self.args = list(args)
        self.process: asyncio.subprocess.Process | None = None

    @property
    def returncode(self) -> int | None:
        ''' None while running or when never started '''
        if not self.process:
            return None
        return self.process.returncode

    def running(self) -> bool:
        ''' started and not exited yet '''
        return self.process is not None and self.process.returncode is None

    async def start(self, name: str, server: str) -> None:
        ''' start the player for name, talking to server '''
        validate_args(self.args)
        args = substitute_args(self.args, name, server)
        logging.info('Starting %s %s', self.command, ' '.join(args))
        try:
            self.process = await asyncio.create_subprocess_exec(self.command, *args)
        except OSError as error:
            raise PlayerProcessError(f'Unable to start {self.command}: {error}') from error
        logging.debug('%s started with pid %s', self.command, self.process.pid)

    async def wait(self) -> tuple[int | None, int | None]:
        ''' wait for the process to end, return (exit code, signal number)

            exit code is None when the process was killed by a signal '''
        if not self.process:
            raise PlayerProcessError('Player process not started')
        returncode = await self.process.wait()
        if returncode < 0:
            return None, -returncode
        return returncode, None

    async def terminate(self) -> None:
        ''' stop the process if it is still running '''
        if not self.running():
            logging.debug('%s is not running', self.command)
            return

        logging.info('Terminating %s %s', self.command, self.process.pid)
        try:
            self.process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(self.process.wait(), TERMINATE_TIMEOUT)
        except asyncio.TimeoutError:
            logging.info('Killing %s %s forcefully', self.command, self.process.pid)
            self.process.kill()
            await self.process.wait()
        logging.debug('%s stopped with %s', self.command, self.process.returncode)
