"""Channel and push operations on the connections held by this node."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Coroutine, Iterable, Mapping

from .conn import Conn, PushError
from .interfaces import CoreOperation, Dispatch, PushConn
from .messages import (
    BulkSubReq,
    ConnChannels,
    GetChannelsReq,
    GetConnsReq,
    Message,
    MessageReq,
    PubReq,
    PubResp,
    PubStatus,
    PushConnReq,
    SubReq,
    UnSubReq,
)
from .repository import MemoryRepository, NsChannelMap
from .utils import locked

log = logging.getLogger(__name__)

DEFAULT_CHANNEL_FAMILY = "default"


def _channel_family(channel_family: str | None) -> str:
    return DEFAULT_CHANNEL_FAMILY if channel_family is None else channel_family


def _as_lists(families: Mapping[str, set[str]]) -> dict[str, list[str]]:
    return {family: sorted(channels) for family, channels in families.items()}


class CoreOperator(CoreOperation, PushConn):
    """Keeps the live connections of this node and their subscriptions."""

    def __init__(self, dispatcher: Dispatch) -> None:
        self._dispatcher = dispatcher
        self._repository = MemoryRepository()
        self._conns: dict[str, Conn] = {}
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def conn(self, conn_id: str) -> Conn | None:
        with locked(self._lock):
            return self._conns.get(conn_id)

    # connection outgoing operation

    def push_to_conn(self, conn_id: str, message: Message) -> None:
        """Deliver ``message`` to a connection; raise PushError if that fails."""
        log.debug("push_to_conn: conn_id: %s, %r", conn_id, message)
        conn = self.conn(conn_id)
        if conn is None:
            log.warning("Connection Id:%s not found", conn_id)
            raise PushError(f"connection {conn_id} not found")
        conn.push(message)

    # connection incoming operation

    def reg_conn(self, conn: Conn) -> None:
        log.info("reg_conn||conn_id=%s", conn.id)
        with locked(self._lock):
            self._conns[conn.id] = conn

    def unreg_conn(self, conn: Conn) -> None:
        log.info("unreg_conn||conn_id=%s", conn.id)
        self._repository.remove_channels(conn)
        with locked(self._lock):
            self._conns.pop(conn.id, None)

    def dispatch_message(self, conn_id: str, message: Message) -> asyncio.Task[Any]:
        """Forward a client message upstream in the background.

        Must be called with an event loop running; returns the task.
        """
        namespace = message.namespace
        families = self.list_channels(conn_id, namespace)
        request = MessageReq(
            cid=conn_id,
            message=Message(
                namespace=namespace,
                path=message.path,
                metadata=message.metadata,
                body=bytes(message.body),
                expire_at=None,
            ),
            channels=_as_lists(families) if families is not None else {},
            trace=None,
        )
        return self._spawn(self._dispatcher.dispatch(namespace, request))

    # channel operation

    def _subscribe_operation(
        self, conn_id: str, namespace: str, channel_family: str, channel: str
    ) -> bool:
        conn = self.conn(conn_id)
        if conn is None:
            return False
        self._repository.subscribe_channel(conn, namespace, channel_family, channel)
        log.info(
            "_fplink_subscribe||conn_id=%s||ns=%s||cf=%s|channel=%s",
            conn_id,
            namespace,
            channel_family,
            channel,
        )
        return True

    def _bulk_subscribe_operation(
        self, conn_id: str, namespace: str, channels: Mapping[str, str]
    ) -> bool:
        conn = self.conn(conn_id)
        if conn is None:
            return False
        self._repository.bulk_subscribe_channel(conn, namespace, channels)
        return True

    def unsubscribe_operation(
        self, conn_id: str, namespace: str, channel_family: str, channel: str
    ) -> bool:
        conn = self.conn(conn_id)
        if conn is None:
            return False
        self._repository.unsubscribe_channel(conn, namespace, channel_family, channel)
        return True

    def search_by_channel(
        self, namespace: str, channel_family: str, channels: Iterable[str] | None
    ) -> dict[Conn, set[str]]:
        return self._repository.search_by_channel(namespace, channel_family, channels)

    def list_channels(self, cid: str, namespace: str) -> dict[str, set[str]] | None:
        return self._repository.list_channels(cid, namespace)

    def list_ns_channels(self, conn_id: str) -> NsChannelMap | None:
        return self._repository.list_ns_channels(conn_id)

    def _conn_channels(self, conn: Conn, namespace: str) -> ConnChannels | None:
        families = self.list_channels(conn.id, namespace)
        if families is None:
            return None
        return ConnChannels(cid=conn.id, channels=_as_lists(families))

    def _publish_to(
        self, namespace: str, message: Message, conn: Conn, hitting: set[str]
    ) -> tuple[set[str], PubStatus] | None:
        try:
            self.push_to_conn(conn.id, message)
        except PushError:
            # only a connection that has gone away fails here
            return None
        status = PubStatus(conn_channels=self._conn_channels(conn, namespace), sent=True)
        return set(hitting), status

    # CoreOperation

    async def subscribe(self, request: SubReq) -> bool:
        return self._subscribe_operation(
            request.cid,
            request.namespace,
            _channel_family(request.channel_family),
            request.channel,
        )

    async def unsubscribe(self, request: UnSubReq) -> bool:
        return self.unsubscribe_operation(
            request.cid,
            request.namespace,
            _channel_family(request.channel_family),
            request.channel,
        )

    async def bulk_subscribe(self, request: BulkSubReq) -> bool:
        return self._bulk_subscribe_operation(request.cid, request.namespace, request.channels)

    async def push_conn(self, request: PushConnReq) -> bool:
        if request.message is None:
            return False
        try:
            self.push_to_conn(request.cid, request.message)
        except PushError:
            return False
        return True

    async def publish(self, request: PubReq) -> PubResp:
        message = request.message
        if message is None:
            return PubResp(success=False, channels=[], status=[])
        namespace = message.namespace
        hits = self.search_by_channel(
            namespace, _channel_family(request.channel_family), request.channels
        )
        sent_channels: set[str] = set()
        status: list[PubStatus] = []
        for conn, hitting in hits.items():
            result = self._publish_to(namespace, message, conn, hitting)
            if result is not None:
                sent, conn_status = result
                status.append(conn_status)
                sent_channels |= sent
        return PubResp(success=True, channels=sorted(sent_channels), status=status)

    async def get_conn_channels(self, request: GetConnsReq) -> list[ConnChannels]:
        namespace = request.namespace
        hits = self.search_by_channel(
            namespace, _channel_family(request.channel_family), [request.channel]
        )
        return [
            channels
            for conn in hits
            if (channels := self._conn_channels(conn, namespace)) is not None
        ]

    async def get_channels(self, request: GetChannelsReq) -> list[str]:
        hits = self._repository.search_by_channel(
            request.namespace, _channel_family(request.channel_family), request.channels
        )
        existing: set[str] = set()
        for channels in hits.values():
            existing.update(channels)
        return sorted(existing)

    # PushConn

    async def push(self, request: PushConnReq) -> None:
        await self.push_conn(request)