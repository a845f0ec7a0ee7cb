#!/usr/bin/env python3
"""pytest fixtures"""

import logging
import typing as t

import pytest
import pytest_asyncio
from aioresponses import CallbackResult, aioresponses

import mprisqueeze.config
from mprisqueeze.lms.client import ErrorSignal, LmsClient

LMS_HOSTNAME = "lms.local"
LMS_URL = f"http://{LMS_HOSTNAME}:9000/jsonrpc.js"


class FakeLms:
    """answer JSON-RPC requests from a table keyed by the request tokens

    A value can be a result, a callable returning a result, or an exception
    to raise instead of answering.
    """

    def __init__(self):
        self.results: dict[tuple[str, ...], t.Any] = {}
        self.requests: list[tuple[str, list[str]]] = []

    def answer(self, tokens: list[str], result: t.Any) -> None:
        """set what the server answers to tokens"""
        self.results[tuple(tokens)] = result

    def sequence(self, tokens: list[str], results: list[t.Any]) -> None:
        """answer results one after the other, the last one forever"""
        pending = list(results)

        def next_result():
            if len(pending) > 1:
                return pending.pop(0)
            return pending[0]

        self.answer(tokens, next_result)

    def callback(self, url, **kwargs) -> CallbackResult:  # pylint: disable=unused-argument
        """aioresponses callback"""
        body = kwargs["json"]
        target, tokens = body["params"]
        self.requests.append((target, tokens))
        result = self.results.get(tuple(tokens), {})
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        logging.debug("FakeLms %s %s -> %s", target, tokens, result)
        return CallbackResult(
            payload={"method": body["method"], "params": body["params"], "result": result}
        )


@pytest.fixture
def bootstrap(tmp_path):
    """bootstrap a configuration"""
    config = mprisqueeze.config.ConfigFile(configfile=tmp_path.joinpath("test.ini"))
    config.save()
    yield config


@pytest.fixture
def fake_lms():
    """an LMS server answering on LMS_URL"""
    lms = FakeLms()
    with aioresponses() as mocked:
        mocked.post(LMS_URL, callback=lms.callback, repeat=True)
        yield lms


@pytest_asyncio.fixture
async def lms_client(fake_lms):  # pylint: disable=redefined-outer-name,unused-argument
    """client talking to the fake LMS server"""
    client = LmsClient(LMS_HOSTNAME, errors=ErrorSignal(grace=0.1))
    yield client
    await client.close()
