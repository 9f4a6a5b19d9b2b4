"""The peer service a node exposes, backed by a core operation."""

from __future__ import annotations

import asyncio

from .interfaces import CoreOperation, LinkService
from .messages import (
    BulkPubReq,
    BulkPubResp,
    BulkSubReq,
    BulkSubResp,
    GetChannelsReq,
    GetChannelsResp,
    GetConnsReq,
    GetConnsResp,
    PubReq,
    PubResp,
    PushConnReq,
    PushConnResp,
    SubReq,
    SubResp,
    UnSubReq,
    UnSubResp,
)


class ServerStub(LinkService):
    """Answers peer requests by delegating to ``operator``."""

    def __init__(self, addr: str, operator: CoreOperation) -> None:
        self.addr = addr
        self._operator = operator

    async def subscribe(self, request: SubReq) -> SubResp:
        return SubResp(success=await self._operator.subscribe(request))

    async def unsubscribe(self, request: UnSubReq) -> UnSubResp:
        return UnSubResp(success=await self._operator.unsubscribe(request))

    async def bulk_subscribe(self, request: BulkSubReq) -> BulkSubResp:
        return BulkSubResp(success=await self._operator.bulk_subscribe(request))

    async def push_conn(self, request: PushConnReq) -> PushConnResp:
        success = await self._operator.push_conn(request)
        return PushConnResp(success=success, sent=success)

    async def publish(self, request: PubReq) -> PubResp:
        return await self._operator.publish(request)

    async def bulk_publish(self, request: BulkPubReq) -> BulkPubResp:
        responses = await asyncio.gather(
            *(self._operator.publish(req) for req in request.requests)
        )
        return BulkPubResp(responses=list(responses))

    async def get_conn_channels(self, request: GetConnsReq) -> GetConnsResp:
        conn_channels = await self._operator.get_conn_channels(request)
        return GetConnsResp(success=bool(conn_channels), conn_channels=conn_channels)

    async def get_channels(self, request: GetChannelsReq) -> GetChannelsResp:
        channels = await self._operator.get_channels(request)
        return GetChannelsResp(
            namespace=request.namespace,
            channel_family=request.channel_family,
            channels=channels,
        )