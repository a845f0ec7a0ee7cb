#!/usr/bin/env python3
''' test the configuration file '''

import mprisqueeze.config
from mprisqueeze.lms.request import KeyStyle


def test_defaults(bootstrap):
    ''' a fresh file has every default '''
    config = bootstrap
    for key in mprisqueeze.config.DEFAULTS:
        assert config.cparser.contains(key)

    settings = config.settings()
    assert settings == mprisqueeze.config.Settings()
    assert settings.hostname == ''
    assert settings.port == 9000
    assert settings.keystyle == KeyStyle.AUTO
    assert settings.player_name == 'SqueezeLite'
    assert settings.player_command == 'squeezelite'
    assert settings.player_args == ('-n', '{name}', '-s', '{server}')
    assert settings.player_timeout == 10.0
    assert settings.discovery_attempt_timeout == 1.0
    assert settings.discovery_timeout == 10.0


def test_values_survive_reload(bootstrap, tmp_path):
    ''' values written are read back with their types '''
    config = bootstrap
    config.cparser.setValue('lms/hostname', 'lms.local')
    config.cparser.setValue('lms/port', '9002')
    config.cparser.setValue('lms/keystyle', 'plain')
    config.cparser.setValue('player/name', 'Kitchen')
    config.cparser.setValue('player/args', ['-n', '{name}', '-s', '{server}', '-o', 'hw:1'])
    config.cparser.setValue('player/timeout', '2.5')
    config.save()

    settings = mprisqueeze.config.ConfigFile(configfile=tmp_path.joinpath('test.ini')).settings()
    assert settings.hostname == 'lms.local'
    assert settings.port == 9002
    assert settings.keystyle == KeyStyle.PLAIN
    assert settings.player_name == 'Kitchen'
    assert settings.player_args == ('-n', '{name}', '-s', '{server}', '-o', 'hw:1')
    assert settings.player_timeout == 2.5


def test_unknown_keystyle(bootstrap):
    ''' falls back to auto '''
    config = bootstrap
    config.cparser.setValue('lms/keystyle', 'camel')
    assert config.keystyle() == KeyStyle.AUTO


def test_reset(bootstrap, tmp_path):
    ''' reset puts the defaults back '''
    config = bootstrap
    config.cparser.setValue('player/name', 'Kitchen')
    config.save()

    config = mprisqueeze.config.ConfigFile(configfile=tmp_path.joinpath('test.ini'), reset=True)
    assert config.settings().player_name == 'SqueezeLite'
