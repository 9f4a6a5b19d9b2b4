"""Connection id generation."""

from __future__ import annotations

import threading

from .interfaces import Protocol
from .utils import locked, now_ts_milli


class IdGen:
    """Generates connection ids of the form ``node_ts_seq_protocol``."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        self._lock = threading.Lock()
        self._cur_seq = 0
        self._cur_ts = 0

    def conn_id(self, protocol: Protocol) -> str:
        """Return a new connection id unique for this generator."""
        with locked(self._lock):
            ts = now_ts_milli()
            if self._cur_ts == ts:
                self._cur_seq += 1
            else:
                self._cur_seq = 0
                self._cur_ts = ts
            seq = self._cur_seq
        return f"{self.node_id}_{ts}_{seq}_{protocol}"


def node_id_of(conn_id: str) -> str:
    """Extract the node id that a connection id was generated on."""
    return conn_id.split("_", 1)[0]