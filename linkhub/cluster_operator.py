"""Channel operations routed to the node that owns each connection."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from .cluster import ClusterForwarder
from .ids import node_id_of
from .interfaces import CoreOperation, NodeOperation
from .messages import (
    BulkSubReq,
    ConnChannels,
    GetChannelsReq,
    GetConnsReq,
    PubReq,
    PubResp,
    PushConnReq,
    SubReq,
    UnSubReq,
)

log = logging.getLogger(__name__)

R = TypeVar("R", SubReq, UnSubReq, BulkSubReq, PushConnReq)


class ClusterOperator(CoreOperation):
    """Runs operations locally or forwards them to the owning peer node.

    Publishes and queries go to this node and to every peer, and their
    answers are merged.
    """

    def __init__(
        self, node: NodeOperation, core: CoreOperation, cluster: ClusterForwarder
    ) -> None:
        self._node = node
        self._core = core
        self._cluster = cluster

    async def _route(
        self,
        name: str,
        request: R,
        local: Callable[[R], Awaitable[bool]],
        remote: Callable[[str, R], Awaitable[bool]],
    ) -> bool:
        node_id = node_id_of(request.cid)
        if self._node.is_myself(node_id):
            return await local(request)
        try:
            return await remote(node_id, request)
        except Exception as exc:
            log.error("%s failed! err = %r", name, exc)
            return False

    async def subscribe(self, request: SubReq) -> bool:
        return await self._route(
            "subscribe", request, self._core.subscribe, self._cluster.subscribe
        )

    async def unsubscribe(self, request: UnSubReq) -> bool:
        return await self._route(
            "unsubscribe", request, self._core.unsubscribe, self._cluster.unsubscribe
        )

    async def bulk_subscribe(self, request: BulkSubReq) -> bool:
        return await self._route(
            "bulk_subscribe", request, self._core.bulk_subscribe, self._cluster.bulk_subscribe
        )

    async def push_conn(self, request: PushConnReq) -> bool:
        return await self._route(
            "push_conn", request, self._core.push_conn, self._cluster.push_conn
        )

    async def publish(self, request: PubReq) -> PubResp:
        local, remote = await asyncio.gather(
            self._core.publish(request), self._cluster.publish(request)
        )
        return PubResp(
            success=local.success and remote.success,
            channels=sorted(set(remote.channels) | set(local.channels)),
            status=[*remote.status, *local.status],
        )

    async def get_conn_channels(self, request: GetConnsReq) -> list[ConnChannels]:
        local = await self._core.get_conn_channels(request)
        remote = await self._cluster.get_conn_channels(request)
        return [*remote, *local]

    async def get_channels(self, request: GetChannelsReq) -> list[str]:
        local = await self._core.get_channels(request)
        remote = await self._cluster.get_channels(request)
        return [*remote, *local]


__all__: list[Any] = ["ClusterOperator"]