#!/usr/bin/env python3
''' Expose an MPRIS2 interface for a player on the session bus

    The interface is specified at
    https://specifications.freedesktop.org/mpris-spec/latest/
'''

import logging
import re

from dbus_fast import BusType, DBusError, ErrorType, PropertyAccess, RequestNameReply, Variant
from dbus_fast.aio import MessageBus
from dbus_fast.errors import AuthError, InvalidAddressError, InvalidBusNameError
from dbus_fast.service import ServiceInterface, dbus_property, method

from mprisqueeze.lms.client import LmsClient
from mprisqueeze.lms.types import LmsError, Mode, PresentationError
from mprisqueeze.lms.types import Shuffle as LmsShuffle

MPRIS2_BASE = 'org.mpris.MediaPlayer2'
MPRIS_OBJECT_PATH = '/org/mpris/MediaPlayer2'
IDENTITY = 'squeezelite'

PLAYBACK_STATUS = {
    Mode.PLAY: 'Playing',
    Mode.PAUSE: 'Paused',
    Mode.STOP: 'Stopped',
}


def to_dbus_error(error: LmsError) -> DBusError:
    ''' client failures become org.freedesktop.DBus.Error.Failed '''
    return DBusError(ErrorType.FAILED, str(error))


def object_path_element(name: str) -> str:
    ''' only [A-Za-z0-9_] is allowed in object path and bus name elements '''
    return re.sub(r'[^A-Za-z0-9_]', '_', name) or '_'


def bus_name_element(name: str) -> str:
    ''' bus name elements must not start with a digit either '''
    element = object_path_element(name)
    if element[0].isdigit():
        return f'_{element}'
    return element


class MprisRoot(ServiceInterface):
    ''' org.mpris.MediaPlayer2 '''

    def __init__(self):
        super().__init__(MPRIS2_BASE)

    @method()
    def Raise(self):  # pylint: disable=invalid-name
        ''' nothing to raise '''
        logging.debug('MprisRoot::raise')

    @method()
    def Quit(self):  # pylint: disable=invalid-name
        ''' quitting is not supported '''
        logging.debug('MprisRoot::quit')

    @dbus_property(access=PropertyAccess.READ)
    def CanQuit(self) -> 'b':  # pylint: disable=invalid-name
        return False

    @dbus_property(access=PropertyAccess.READ)
    def CanRaise(self) -> 'b':  # pylint: disable=invalid-name
        return False

    @dbus_property(access=PropertyAccess.READ)
    def HasTrackList(self) -> 'b':  # pylint: disable=invalid-name
        return False

    @dbus_property(access=PropertyAccess.READ)
    def Identity(self) -> 's':  # pylint: disable=invalid-name
        return IDENTITY

    @dbus_property(access=PropertyAccess.READ)
    def SupportedUriSchemes(self) -> 'as':  # pylint: disable=invalid-name
        return []

    @dbus_property(access=PropertyAccess.READ)
    def SupportedMimeTypes(self) -> 'as':  # pylint: disable=invalid-name
        return []


class MprisPlayer(ServiceInterface):  # pylint: disable=too-many-public-methods
    ''' org.mpris.MediaPlayer2.Player, backed by the LMS client '''

    def __init__(self, client: LmsClient, player_name: str, playerid: str):
        super().__init__(f'{MPRIS2_BASE}.Player')
        self.client = client
        self.player_name = player_name
        self.playerid = playerid

    #### values read from the LMS server

    async def playback_status(self) -> str:
        ''' Playing, Paused or Stopped '''
        mode = await self.client.get_mode(self.playerid)
        return PLAYBACK_STATUS[mode]

    async def shuffle(self) -> bool:
        ''' only shuffling by song counts as shuffling '''
        return await self.client.get_shuffle(self.playerid) == LmsShuffle.SONGS

    async def metadata(self) -> dict[str, Variant]:
        ''' metadata of the current track, empty without one '''
        if await self.client.get_track_count(self.playerid) == 0:
            logging.debug('MprisPlayer::metadata no track')
            return {}

        artist = await self.client.get_artist(self.playerid)
        album = await self.client.get_album(self.playerid)
        title = await self.client.get_title(self.playerid)
        index = await self.client.get_index(self.playerid)

        trackid = f'{MPRIS_OBJECT_PATH}/{object_path_element(self.player_name)}/track/{index}'
        metadata = {'mpris:trackid': Variant('o', trackid)}
        if artist is not None:
            metadata['xesam:artist'] = Variant('as', [artist])
        if album is not None:
            metadata['xesam:album'] = Variant('s', album)
        if title is not None:
            metadata['xesam:title'] = Variant('s', title)
        return metadata

    async def playback_status_changed(self) -> None:
        ''' tell the bus that PlaybackStatus and Metadata changed '''
        try:
            changed = {
                'PlaybackStatus': await self.playback_status(),
                'Metadata': await self.metadata(),
            }
        except LmsError as error:
            logging.debug('Unable to read the new state, invalidating: %s', error)
            self.emit_properties_changed({}, ['PlaybackStatus', 'Metadata'])
            return
        self.emit_properties_changed(changed)

    async def _call(self, name: str, command) -> None:
        logging.debug('MprisPlayer::%s', name)
        try:
            await command(self.playerid)
        except LmsError as error:
            raise to_dbus_error(error) from error

    #### methods

    @method()
    async def Next(self):  # pylint: disable=invalid-name
        await self._call('next', self.client.next)

    @method()
    async def Previous(self):  # pylint: disable=invalid-name
        await self._call('previous', self.client.previous)

    @method()
    async def Pause(self):  # pylint: disable=invalid-name
        await self._call('pause', self.client.pause)

    @method()
    async def PlayPause(self):  # pylint: disable=invalid-name
        await self._call('play_pause', self.client.play_pause)

    @method()
    async def Stop(self):  # pylint: disable=invalid-name
        await self._call('stop', self.client.stop)

    @method()
    async def Play(self):  # pylint: disable=invalid-name
        await self._call('play', self.client.play)

    @method()
    def Seek(self, offset: 'x'):  # pylint: disable=invalid-name
        logging.debug('MprisPlayer::seek %s', offset)

    @method()
    def SetPosition(self, track_id: 'o', position: 'x'):  # pylint: disable=invalid-name
        logging.debug('MprisPlayer::set_position %s %s', track_id, position)

    @method()
    def OpenUri(self, uri: 's'):  # pylint: disable=invalid-name
        logging.debug('MprisPlayer::open_uri %s', uri)

    #### properties

    @dbus_property(access=PropertyAccess.READ)
    async def PlaybackStatus(self) -> 's':  # pylint: disable=invalid-name
        try:
            return await self.playback_status()
        except LmsError as error:
            raise to_dbus_error(error) from error

    @dbus_property(access=PropertyAccess.READ)
    def LoopStatus(self) -> 's':  # pylint: disable=invalid-name
        return 'None'

    @dbus_property(access=PropertyAccess.READ)
    def Rate(self) -> 'd':  # pylint: disable=invalid-name
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    async def Shuffle(self) -> 'b':  # pylint: disable=invalid-name
        try:
            return await self.shuffle()
        except LmsError as error:
            raise to_dbus_error(error) from error

    @dbus_property(access=PropertyAccess.READ)
    async def Metadata(self) -> 'a{sv}':  # pylint: disable=invalid-name
        try:
            return await self.metadata()
        except LmsError as error:
            raise to_dbus_error(error) from error

    @dbus_property(access=PropertyAccess.READ)
    def Volume(self) -> 'd':  # pylint: disable=invalid-name
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def Position(self) -> 'x':  # pylint: disable=invalid-name
        return 0

    @dbus_property(access=PropertyAccess.READ)
    def MinimumRate(self) -> 'd':  # pylint: disable=invalid-name
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def MaximumRate(self) -> 'd':  # pylint: disable=invalid-name
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def CanGoNext(self) -> 'b':  # pylint: disable=invalid-name
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanGoPrevious(self) -> 'b':  # pylint: disable=invalid-name
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanPlay(self) -> 'b':  # pylint: disable=invalid-name
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanPause(self) -> 'b':  # pylint: disable=invalid-name
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanSeek(self) -> 'b':  # pylint: disable=invalid-name
        return False

    @dbus_property(access=PropertyAccess.READ)
    def CanControl(self) -> 'b':  # pylint: disable=invalid-name
        return True


class MprisServer:
    ''' the bus connection and the exported interfaces '''

    def __init__(self, bus: MessageBus, player: MprisPlayer):
        self.bus = bus
        self.player = player

    async def playback_status_changed(self) -> None:
        ''' forward the notification to the player interface '''
        await self.player.playback_status_changed()

    async def close(self) -> None:
        ''' leave the bus '''
        self.bus.disconnect()
        await self.bus.wait_for_disconnect()


async def start_dbus_server(client: LmsClient, player_name: str, playerid: str) -> MprisServer:
    ''' export MPRIS2 for playerid on the session bus '''
    logging.info('Starting DBus server for player %s', playerid)
    busname = f'{MPRIS2_BASE}.{bus_name_element(player_name)}'
    try:
        bus = await MessageBus(bus_type=BusType.SESSION).connect()
    except (AuthError, DBusError, InvalidAddressError, OSError) as error:
        raise PresentationError(f'Unable to connect to the session bus: {error}') from error

    player = MprisPlayer(client, player_name, playerid)
    try:
        bus.export(MPRIS_OBJECT_PATH, MprisRoot())
        bus.export(MPRIS_OBJECT_PATH, player)
        reply = await bus.request_name(busname)
    except (DBusError, InvalidBusNameError) as error:
        bus.disconnect()
        raise PresentationError(f'Unable to register {busname}: {error}') from error

    if reply != RequestNameReply.PRIMARY_OWNER:
        bus.disconnect()
        raise PresentationError(f'{busname} is already owned by another process')

    logging.info('DBus server started for player %s as %s', player_name, busname)
    return MprisServer(bus, player)
