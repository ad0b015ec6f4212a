from __future__ import annotations

import codecs
import enum
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from log_parser import CHANNELS, DEFAULT_PATTERNS, LinePatterns, LogEvent, classify

logger = logging.getLogger(__name__)

Handler = Callable[[LogEvent], object]

# au-delà, une ligne sans fin est abandonnée
MAX_PARTIAL = 64 * 1024


@dataclass(frozen=True)
class FileCursor:
    size: int = 0
    mtime: Optional[float] = None

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileCursor":
        return cls(size=int(st.st_size), mtime=st.st_mtime)

    def grew(self, size: int) -> bool:
        return size > self.size

    def truncated(self, size: int) -> bool:
        return size < self.size


def read_delta(path: Union[str, Path], start: int, end: int, encoding: str = "utf-8", decoder=None) -> str:
    """
    Octets ``[start, end)`` de ``path`` décodés en texte. Avec un décodeur
    incrémental, un caractère coupé en fin de plage reste dans le décodeur
    jusqu'à la lecture suivante. OSError remonte à l'appelant.
    """
    with open(path, "rb") as f:
        f.seek(start)
        data = f.read(max(0, end - start))
    if decoder is not None:
        return decoder.decode(data)
    return data.decode(encoding, errors="replace")


class WatcherState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


class LogWatcher:
    """
    Suit le log du serveur à intervalle fixe et publie les lignes reconnues.

    Seuls les octets ajoutés après ``start()`` sont lus. Un fichier qui
    rétrécit (rotation, redémarrage) replace le curseur sans rien lire.
    ``stop()`` laisse finir le cycle en cours, événements compris.
    """

    def __init__(
        self,
        path: Union[str, Path],
        interval: float = 2.0,
        encoding: str = "utf-8",
        patterns: LinePatterns = DEFAULT_PATTERNS,
    ):
        codecs.lookup(encoding)
        self.path = Path(path)
        self.interval = float(interval)
        self.encoding = encoding
        self.patterns = patterns
        self._listeners: Dict[str, List[Handler]] = {c: [] for c in CHANNELS}
        self._cursor: Optional[FileCursor] = None
        self._partial = ""
        self._decoder = self._new_decoder()
        self._state = WatcherState.IDLE
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        # réentrant : un listener peut appeler stop() pendant le cycle
        self._cycle_lock = threading.RLock()

    def _new_decoder(self):
        return codecs.getincrementaldecoder(self.encoding)(errors="replace")

    def _reset_buffer(self) -> None:
        self._partial = ""
        self._decoder = self._new_decoder()

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def cursor(self) -> Optional[FileCursor]:
        return self._cursor

    def on(self, channel: str, handler: Handler) -> "LogWatcher":
        if channel not in self._listeners:
            raise ValueError(f"unknown channel {channel!r}, expected one of {', '.join(CHANNELS)}")
        self._listeners[channel].append(handler)
        return self

    def off(self, channel: str, handler: Handler) -> "LogWatcher":
        handlers = self._listeners.get(channel, [])
        if handler in handlers:
            handlers.remove(handler)
        return self

    def start(self) -> None:
        if self._state is WatcherState.ACTIVE:
            return
        with self._cycle_lock:
            try:
                self._cursor = FileCursor.from_stat(os.stat(self.path))
            except FileNotFoundError:
                logger.warning("%s does not exist yet, tailing from offset 0", self.path)
                self._cursor = FileCursor()
            self._reset_buffer()
            offset = self._cursor.size
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name=f"log-watcher:{self.path.name}", daemon=True
        )
        self._state = WatcherState.ACTIVE
        self._thread.start()
        logger.info("Watching %s from offset %d every %.1fs", self.path, offset, self.interval)

    def stop(self) -> None:
        if self._state is not WatcherState.ACTIVE:
            return
        self._state = WatcherState.STOPPED
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1)
        self._thread = None
        with self._cycle_lock:
            self._cursor = None
        logger.info("Stopped watching %s", self.path)

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                self.poll()
            except Exception:
                logger.exception("Poll cycle on %s failed", self.path)

    def poll(self) -> List[LogEvent]:
        """Un cycle stat, comparaison, lecture, classement, émission. Renvoie les événements émis."""
        with self._cycle_lock:
            cursor = self._cursor
            if cursor is None:
                return []
            try:
                st = os.stat(self.path)
            except OSError as e:
                logger.debug("stat %s failed: %s", self.path, e)
                return []
            current = FileCursor.from_stat(st)

            if cursor.truncated(current.size):
                logger.info("%s shrank from %d to %d bytes, resyncing", self.path, cursor.size, current.size)
                self._cursor = current
                self._reset_buffer()
                return []
            if not cursor.grew(current.size):
                self._cursor = current
                return []

            try:
                text = read_delta(self.path, cursor.size, current.size, self.encoding, self._decoder)
            except OSError as e:
                logger.debug("read %s failed, retrying from %d: %s", self.path, cursor.size, e)
                return []
            self._cursor = current

            events = []
            for line in self._split(text):
                event = classify(line, self.patterns)
                if event is None:
                    if line:
                        logger.debug("unmatched: %s", line)
                    continue
                events.append(event)
                self._emit(event)
            return events

    def _split(self, text: str) -> List[str]:
        text = self._partial + text
        lines = text.split("\n")
        # dernier élément vide si le delta finit sur un saut de ligne
        self._partial = lines.pop()
        if len(self._partial) > MAX_PARTIAL:
            logger.debug("dropping %d chars without newline from %s", len(self._partial), self.path)
            self._partial = ""
        return lines

    def _emit(self, event: LogEvent) -> None:
        for handler in list(self._listeners[event.channel]):
            try:
                handler(event)
            except Exception:
                logger.exception("%s listener %r raised on %r", event.channel, handler, event)
