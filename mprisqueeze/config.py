#!/usr/bin/env python3
"""
config file parsing/handling
"""

import contextlib
import dataclasses
import logging
import pathlib
import typing as t

from PySide6.QtCore import QSettings  # pylint: disable=no-name-in-module

from mprisqueeze.lms.request import KeyStyle
from mprisqueeze.lms.types import DEFAULT_PORT

ORGANIZATION = "mprisqueeze"
APPLICATION = "mprisqueeze"

DEFAULTS: dict[str, t.Any] = {
    "lms/hostname": "",
    "lms/port": DEFAULT_PORT,
    "lms/keystyle": KeyStyle.AUTO.value,
    "discovery/attempttimeout": 1.0,
    "discovery/timeout": 10.0,
    "player/name": "SqueezeLite",
    "player/command": "squeezelite",
    "player/args": ["-n", "{name}", "-s", "{server}"],
    "player/timeout": 10.0,
    "poll/interval": 0.5,
    "errors/grace": 5.0,
    "settings/loglevel": "INFO",
}


@dataclasses.dataclass(frozen=True)
class Settings:  # pylint: disable=too-many-instance-attributes
    """everything the supervisor needs to run"""

    hostname: str = DEFAULTS["lms/hostname"]
    port: int = DEFAULTS["lms/port"]
    keystyle: KeyStyle = KeyStyle.AUTO
    discovery_attempt_timeout: float = DEFAULTS["discovery/attempttimeout"]
    discovery_timeout: float = DEFAULTS["discovery/timeout"]
    player_name: str = DEFAULTS["player/name"]
    player_command: str = DEFAULTS["player/command"]
    player_args: tuple[str, ...] = tuple(DEFAULTS["player/args"])
    player_timeout: float = DEFAULTS["player/timeout"]
    poll_interval: float = DEFAULTS["poll/interval"]
    error_grace: float = DEFAULTS["errors/grace"]
    loglevel: str = DEFAULTS["settings/loglevel"]


class ConfigFile:
    """read and write to mprisqueeze.ini"""

    def __init__(self, configfile: str | pathlib.Path | None = None, reset: bool = False):
        if configfile:
            self.cparser: QSettings = QSettings(str(configfile), QSettings.IniFormat)
        else:
            self.cparser = QSettings(
                QSettings.IniFormat, QSettings.UserScope, ORGANIZATION, APPLICATION
            )
        logging.info("configuration: %s", self.cparser.fileName())

        if reset:
            logging.debug("config reset")
            self.cparser.clear()
        self.defaults()

    def defaults(self) -> None:
        """fill in whatever is not set yet"""
        for key, value in DEFAULTS.items():
            if not self.cparser.contains(key):
                self.cparser.setValue(key, value)

    def save(self) -> None:
        """save the config"""
        self.cparser.sync()

    def _value(self, key: str, valuetype: type) -> t.Any:
        with contextlib.suppress(TypeError, ValueError):
            value = self.cparser.value(key, defaultValue=DEFAULTS[key], type=valuetype)
            if value is not None:
                return value
        logging.error("Invalid value for %s, using %s", key, DEFAULTS[key])
        return DEFAULTS[key]

    def keystyle(self) -> KeyStyle:
        """how query results are named"""
        value = self._value("lms/keystyle", str)
        try:
            return KeyStyle(value)
        except ValueError:
            logging.error("Unknown key style %s, using %s", value, KeyStyle.AUTO.value)
            return KeyStyle.AUTO

    def settings(self) -> Settings:
        """snapshot of the configuration"""
        self.cparser.sync()
        return Settings(
            hostname=self._value("lms/hostname", str),
            port=self._value("lms/port", int),
            keystyle=self.keystyle(),
            discovery_attempt_timeout=self._value("discovery/attempttimeout", float),
            discovery_timeout=self._value("discovery/timeout", float),
            player_name=self._value("player/name", str),
            player_command=self._value("player/command", str),
            player_args=tuple(self._value("player/args", list)),
            player_timeout=self._value("player/timeout", float),
            poll_interval=self._value("poll/interval", float),
            error_grace=self._value("errors/grace", float),
            loglevel=self._value("settings/loglevel", str),
        )
