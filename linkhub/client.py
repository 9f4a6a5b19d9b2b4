"""Client-side connection states, network kinds and connection ids."""

from __future__ import annotations

import enum
import threading
import time

from .utils import locked


class State(enum.IntEnum):
    """State of a client link; numbered as reported to the platform."""

    INIT = 1
    CONNECTING = 2
    CONNECTED = 3
    DISCONNECTED = 4
    CLOSED = 5


class NetworkType(enum.Enum):
    """Kind of network the device is on."""

    TYPE_UNKNOWN = enum.auto()
    TYPE_NO_NET = enum.auto()
    TYPE_WIFI = enum.auto()
    TYPE_2G = enum.auto()
    TYPE_3G = enum.auto()
    TYPE_4G = enum.auto()
    TYPE_5G = enum.auto()


def now_ts() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


class ClientIdGen:
    """Generates ids of the form ``protocol_addr_ts_seq`` for client connections."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cur_seq = 0
        self._cur_ts = 0

    def generate(self, addr: str, protocol: str) -> str:
        ts = now_ts()
        with locked(self._lock):
            self._cur_seq += 1
            self._cur_ts = ts
            seq = self._cur_seq
        return f"{protocol}_{addr}_{ts}_{seq}"


ID_GEN = ClientIdGen()