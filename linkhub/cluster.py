"""Forwarding of channel operations to the other nodes of the cluster."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, TypeVar

from .interfaces import LinkService
from .messages import (
    BulkPubReq,
    BulkSubReq,
    ConnChannels,
    GetChannelsReq,
    GetConnsReq,
    PubReq,
    PubResp,
    PubStatus,
    PushConnReq,
    SubReq,
    UnSubReq,
)
from .utils import locked

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CLUSTER_TIMEOUT_MS = 500


@dataclass(frozen=True)
class BulkSettings:
    """Whether publishes are batched, and the batch's time and size limits."""

    enable: bool = False
    max_us: int = 500
    max_size: int = 200


@dataclass(frozen=True)
class Trigger:
    """What a publish should do with the pending batch.

    ``interval`` is the number of microseconds to wait before flushing;
    ``is_now`` asks for an immediate flush.
    """

    interval: int | None = None
    is_now: bool = False


class BulkTrigger:
    """Decides when a batch of publishes is flushed to the cluster."""

    def __init__(self, settings: BulkSettings) -> None:
        self._settings = settings
        self._lock = threading.Lock()
        self._is_init = True
        self._seq = 0
        self._instant = time.monotonic_ns()

    def generate(self) -> Trigger:
        max_us = self._settings.max_us
        max_size = self._settings.max_size
        with locked(self._lock):
            now = time.monotonic_ns()
            if self._is_init:
                self._is_init = False
                self._instant = now
                self._seq += 1
                return Trigger(interval=max_us, is_now=False)
            if self._seq + 1 >= max_size:
                self._instant = now
                self._seq = 0
                return Trigger(interval=None, is_now=True)
            if (now - self._instant) // 1000 > max_us:
                self._instant = now
                self._seq = 0
                return Trigger(interval=max_us, is_now=False)
            self._seq += 1
            return Trigger(interval=None, is_now=False)


class ClusterForwarder:
    """Sends operations to peer nodes, keyed by node id.

    ``clients`` is read on every call, so a shared mapping may be updated
    while the forwarder is in use.
    """

    def __init__(
        self,
        clients: Mapping[str, LinkService],
        timeout_ms: int = DEFAULT_CLUSTER_TIMEOUT_MS,
        settings: BulkSettings | None = None,
    ) -> None:
        self._clients = clients
        self._timeout = timeout_ms / 1000
        self._settings = settings if settings is not None else BulkSettings()
        self._trigger = BulkTrigger(self._settings)
        self._pending: list[tuple[PubReq, asyncio.Future[list[PubResp]]]] = []
        self._pending_lock = threading.Lock()

    def _peers(self) -> list[LinkService]:
        return list(self._clients.values())

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, self._timeout)

    async def subscribe(self, node_id: str, request: SubReq) -> bool:
        client = self._clients.get(node_id)
        if client is None:
            log.error("bind_tag failed: not found client for connectionId: %s", request.cid)
            return False
        response = await self._call(client.subscribe(request))
        return response.success

    async def unsubscribe(self, node_id: str, request: UnSubReq) -> bool:
        client = self._clients.get(node_id)
        if client is None:
            log.warning(
                "unbind_tag failed, no client for nodeId: %s, connId: %s", node_id, request.cid
            )
            return False
        response = await self._call(client.unsubscribe(request))
        return response.success

    async def bulk_subscribe(self, node_id: str, request: BulkSubReq) -> bool:
        client = self._clients.get(node_id)
        if client is None:
            log.warning("bulk_subscribe failed, no client for cid: %s", request.cid)
            return False
        response = await self._call(client.bulk_subscribe(request))
        return response.success

    async def push_conn(self, node_id: str, request: PushConnReq) -> bool:
        client = self._clients.get(node_id)
        if client is None:
            log.warning("push_conn failed: no client for connectionId: %s", request.cid)
            return False
        response = await self._call(client.push_conn(request))
        return response.success

    async def publish(self, request: PubReq) -> PubResp:
        if self._settings.enable:
            return await self.publish_bulk(request)
        return await self.publish_one_shot(request)

    async def publish_one_shot(self, request: PubReq) -> PubResp:
        """Publish on every peer at once and merge their answers."""
        results = await asyncio.gather(
            *(self._call(client.publish(request)) for client in self._peers()),
            return_exceptions=True,
        )
        responses: list[PubResp] = []
        for result in results:
            if isinstance(result, BaseException):
                log.warning("push_by_tags failed: %s", result)
            else:
                responses.append(result)
        return _merge(responses)

    async def publish_bulk(self, request: PubReq) -> PubResp:
        """Queue the publish in a batch and wait for the batch's answers."""
        future: asyncio.Future[list[PubResp]] = asyncio.get_running_loop().create_future()
        trigger = self._trigger.generate()
        with locked(self._pending_lock):
            self._pending.append((request, future))
        should_flush = trigger.is_now
        if trigger.interval is not None:
            log.debug("publish should wait %s", trigger.interval)
            await asyncio.sleep(trigger.interval / 1_000_000)
            should_flush = True
        if should_flush:
            await self._flush()
        try:
            responses = await future
        except Exception as exc:
            log.error("push_by_tags failed: %s", exc)
            responses = []
        return _merge(responses)

    async def get_conn_channels(self, request: GetConnsReq) -> list[ConnChannels]:
        results = await asyncio.gather(
            *(self._call(client.get_conn_channels(request)) for client in self._peers()),
            return_exceptions=True,
        )
        conn_channels: list[ConnChannels] = []
        for result in results:
            if isinstance(result, BaseException):
                log.warning("get_conn_channels failed: %s", result)
            else:
                conn_channels.extend(result.conn_channels)
        return conn_channels

    async def get_channels(self, request: GetChannelsReq) -> list[str]:
        results = await asyncio.gather(
            *(self._call(client.get_channels(request)) for client in self._peers()),
            return_exceptions=True,
        )
        channels: list[str] = []
        for result in results:
            if isinstance(result, BaseException):
                log.warning("get_channels failed: %s", result)
            elif result.channels is not None:
                channels.extend(result.channels)
        return channels

    async def _flush(self) -> None:
        with locked(self._pending_lock):
            pending, self._pending = self._pending, []
        if not pending:
            return
        log.debug("inner_publish_bulk %d requests", len(pending))
        requests = [request for request, _ in pending]
        results = await asyncio.gather(
            *(
                self._call(client.bulk_publish(BulkPubReq(requests=list(requests))))
                for client in self._peers()
            ),
            return_exceptions=True,
        )
        per_client: list[deque[PubResp]] = []
        for result in results:
            if isinstance(result, BaseException):
                log.warning("push_by_tags failed: %s", result)
                per_client.append(deque())
            else:
                per_client.append(deque(result.responses))
        for _, future in pending:
            answers = [responses.popleft() for responses in per_client if responses]
            if future.done():
                log.error("inner_publish_bulk error: waiter already gone")
                continue
            future.set_result(answers)


def _merge(responses: list[PubResp]) -> PubResp:
    success = True
    channels: set[str] = set()
    status: list[PubStatus] = []
    for response in responses:
        success = success and response.success
        channels.update(response.channels)
        status.extend(response.status)
    return PubResp(success=success, channels=sorted(channels), status=status)


__all__: list[Any] = ["BulkSettings", "Trigger", "BulkTrigger", "ClusterForwarder"]