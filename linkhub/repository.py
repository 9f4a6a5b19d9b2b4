"""In-memory store of channel subscriptions per connection."""

from __future__ import annotations

import copy
import threading
from typing import Iterable, Mapping

from .conn import Conn
from .utils import locked

NsChannelMap = dict[str, dict[str, set[str]]]


def index_key(namespace: str, channel_family: str, channel: str) -> str:
    """Key under which subscribers of one channel are indexed."""
    return f"{namespace}::{channel_family}::{channel}"


class MemoryRepository:
    """Subscriptions kept both per connection and per channel.

    Safe to share between threads.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._storage: dict[str, NsChannelMap] = {}
        self._indexing: dict[str, set[Conn]] = {}

    def search_by_channel(
        self,
        ns: str,
        channel_family: str,
        channels: Iterable[str] | None,
    ) -> dict[Conn, set[str]]:
        """Map each subscribed connection to the given channels it holds."""
        found: dict[Conn, set[str]] = {}
        if channels is None:
            return found
        with locked(self._lock):
            for channel in channels:
                for conn in self._indexing.get(index_key(ns, channel_family, channel), ()):
                    found.setdefault(conn, set()).add(channel)
        return found

    def search_all_channels(self, ns: str, channel_family: str) -> set[str]:
        """Every channel of a family subscribed to by any connection."""
        channels: set[str] = set()
        with locked(self._lock):
            for ns_channels in self._storage.values():
                channels.update(ns_channels.get(ns, {}).get(channel_family, ()))
        return channels

    def subscribe_channel(self, conn: Conn, ns: str, channel_family: str, channel: str) -> None:
        with locked(self._lock):
            self._store(conn, ns, {channel_family: channel})
            self.index(conn, ns, channel_family, channel)

    def unsubscribe_channel(self, conn: Conn, ns: str, channel_family: str, channel: str) -> None:
        with locked(self._lock):
            channels = self._storage.get(conn.id, {}).get(ns, {}).get(channel_family)
            if channels is not None and channel in channels:
                channels.discard(channel)
                self.remove_index(conn, ns, channel_family, channel)

    def bulk_subscribe_channel(self, conn: Conn, ns: str, channels: Mapping[str, str]) -> None:
        """Subscribe to one channel in each family of ``channels``."""
        with locked(self._lock):
            self._store(conn, ns, channels)
            for channel_family, channel in channels.items():
                self.index(conn, ns, channel_family, channel)

    def remove_channels(self, conn: Conn) -> None:
        """Forget every subscription of ``conn``."""
        with locked(self._lock):
            ns_channels = self._storage.pop(conn.id, None)
            if ns_channels is None:
                return
            for ns, families in ns_channels.items():
                for channel_family, channels in families.items():
                    for channel in channels:
                        self.remove_index(conn, ns, channel_family, channel)

    def list_ns_channels(self, cid: str) -> NsChannelMap | None:
        with locked(self._lock):
            ns_channels = self._storage.get(cid)
            return None if ns_channels is None else copy.deepcopy(ns_channels)

    def list_channels(self, cid: str, ns: str) -> dict[str, set[str]] | None:
        with locked(self._lock):
            families = self._storage.get(cid, {}).get(ns)
            return None if families is None else copy.deepcopy(families)

    def index(self, conn: Conn, ns: str, channel_family: str, channel: str) -> None:
        with locked(self._lock):
            self._indexing.setdefault(index_key(ns, channel_family, channel), set()).add(conn)

    def remove_index(self, conn: Conn, ns: str, channel_family: str, channel: str) -> None:
        key = index_key(ns, channel_family, channel)
        with locked(self._lock):
            conns = self._indexing.get(key)
            if conns is None:
                return
            conns.discard(conn)
            if not conns:
                del self._indexing[key]

    def has_conn(self, cid: str) -> bool:
        with locked(self._lock):
            return cid in self._storage

    def has_index(self, key: str) -> bool:
        with locked(self._lock):
            return key in self._indexing

    def _store(self, conn: Conn, ns: str, channels: Mapping[str, str]) -> None:
        families = self._storage.setdefault(conn.id, {}).setdefault(ns, {})
        for channel_family, channel in channels.items():
            families.setdefault(channel_family, set()).add(channel)