from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Union

# [12:00:00] [Server thread/INFO]: ... et la forme Forge avec le nom du logger
LOG_PREFIX = re.compile(r"^\[[^\]]*\] \[[^\]]*\](?: \[[^\]]*\])?: ")
COLOR_RESET = re.compile(r"\x1b\[0?m")

CHAT_LINE = re.compile(r"^<([^>]*)>\s(.*)$")
LOGIN_LINE = re.compile(r"^([^\[]*)\[[^\]]*\]\slogged\sin\swith\sentity\sid.*$")
LOGOUT_LINE = re.compile(r"^(\S*)\slost\sconnection:\sDisconnected$")
JOINED_LINE = re.compile(r"^(\S+)\sjoined\sthe\sgame$")
LEFT_LINE = re.compile(r"^(\S+)\sleft\sthe\sgame$")
START_LINE = re.compile(r'^Done\s\([^)]*\)!\sFor\shelp,\stype\s"help"$')
STOP_MARKER = "Stopping server"

CHANNEL_CHAT = "chat"
CHANNEL_PLAYER = "login-or-logout"
CHANNEL_SERVER = "start-or-stop"
CHANNELS = (CHANNEL_CHAT, CHANNEL_PLAYER, CHANNEL_SERVER)


@dataclass(frozen=True)
class Chat:
    username: str
    message: str
    channel = CHANNEL_CHAT


@dataclass(frozen=True)
class Login:
    username: str
    channel = CHANNEL_PLAYER


@dataclass(frozen=True)
class Logout:
    username: str
    channel = CHANNEL_PLAYER


@dataclass(frozen=True)
class Start:
    channel = CHANNEL_SERVER


@dataclass(frozen=True)
class Stop:
    channel = CHANNEL_SERVER


LogEvent = Union[Chat, Login, Logout, Start, Stop]


def _exact(marker: str) -> Pattern[str]:
    return re.compile("^" + re.escape(marker) + "$")


@dataclass(frozen=True)
class LinePatterns:
    chat: Pattern[str] = CHAT_LINE
    login: Pattern[str] = LOGIN_LINE
    logout: Pattern[str] = LOGOUT_LINE
    start: Pattern[str] = START_LINE
    stop: Pattern[str] = _exact(STOP_MARKER)

    @classmethod
    def build(cls, stop_marker: str = STOP_MARKER, announcements: bool = False) -> "LinePatterns":
        # le serveur écrit la ligne de connexion ET l'annonce join/left,
        # un seul des deux jeux est actif pour éviter les doublons
        if announcements:
            return cls(login=JOINED_LINE, logout=LEFT_LINE, stop=_exact(stop_marker))
        return cls(stop=_exact(stop_marker))


DEFAULT_PATTERNS = LinePatterns()


def strip_prefix(line: str) -> str:
    line = line.rstrip("\r")
    return LOG_PREFIX.sub("", line, count=1)


def classify(line: str, patterns: LinePatterns = DEFAULT_PATTERNS) -> Optional[LogEvent]:
    body = strip_prefix(line)
    if not body:
        return None
    m = patterns.chat.match(body)
    if m:
        return Chat(m.group(1), COLOR_RESET.sub("", m.group(2)))
    m = patterns.login.match(body)
    if m:
        return Login(m.group(1))
    m = patterns.logout.match(body)
    if m:
        return Logout(m.group(1))
    if patterns.start.match(body):
        return Start()
    if patterns.stop.match(body):
        return Stop()
    return None
