from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from mcrcon import MCRcon

logger = logging.getLogger(__name__)

LIST_RESPONSE = re.compile(r"^There are (\d+) of a max of (\d+) players online: ?(.*)$")
FORMATTING = re.compile(r"§[0-9a-fk-or]", re.IGNORECASE)


@dataclass(frozen=True)
class PlayerList:
    count: int
    max: int
    users: List[str] = field(default_factory=list)

    def status(self) -> str:
        return f"[{self.count}/{self.max}]"


def parse_player_list(text: str) -> Optional[PlayerList]:
    m = LIST_RESPONSE.match(FORMATTING.sub("", text or "").strip())
    if not m:
        return None
    users = [u.strip() for u in m.group(3).split(",") if u.strip()]
    return PlayerList(count=int(m.group(1)), max=int(m.group(2)), users=users)


class RconClient:
    def __init__(self, host: str, port: int, password: str, timeout: float = 5.0, dry_run: bool = False):
        self.host = host
        self.port = int(port)
        self.password = password
        self.timeout = float(timeout)
        self.conn: Optional[MCRcon] = None
        self.dry_run = dry_run

    @property
    def connected(self) -> bool:
        return self.conn is not None

    def connect(self):
        if self.dry_run:
            return
        conn = MCRcon(self.host, self.password, port=self.port, timeout=int(self.timeout))
        conn.connect()
        self.conn = conn
        logger.info("RCON connected to %s:%d", self.host, self.port)

    def close(self):
        if self.conn is not None:
            try:
                self.conn.disconnect()
            except OSError as e:
                logger.debug("RCON disconnect failed: %s", e)
            self.conn = None

    def cmd(self, command: str) -> str:
        if self.dry_run:
            return f"[DRY-RUN] {command}"
        if not self.conn:
            self.connect()
        try:
            assert self.conn is not None
            return self.conn.command(command)
        except Exception as e:
            logger.warning("RCON command %r failed (%s), reconnecting", command, e)
            self.close()
            self.connect()
            assert self.conn is not None
            return self.conn.command(command)

    def list_players(self) -> Optional[PlayerList]:
        # None : serveur arrêté ou réponse inattendue
        try:
            return parse_player_list(self.cmd("list"))
        except Exception as e:
            logger.debug("RCON list failed: %s", e)
            self.close()
            return None
