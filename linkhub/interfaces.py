"""Abstract roles shared by the server components."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .messages import (
        BulkPubReq,
        BulkPubResp,
        BulkSubReq,
        BulkSubResp,
        ConnChannels,
        GetChannelsReq,
        GetChannelsResp,
        GetConnsReq,
        GetConnsResp,
        Message,
        MessageReq,
        PubReq,
        PubResp,
        PushConnReq,
        PushConnResp,
        SubReq,
        SubResp,
        UnSubReq,
        UnSubResp,
    )


class Protocol(enum.Enum):
    """Transport a client connection uses."""

    TCP = "tcp"
    WEBSOCKET = "ws"
    QUIC = "quic"

    def __str__(self) -> str:
        return self.value


@dataclass
class Switches:
    """Process-wide flags controlling user-facing listeners and connections."""

    user_port_listen: bool = False
    user_conn_stop: bool = False


class SendMessage(ABC):
    """Something that delivers a message down to a client."""

    @abstractmethod
    def send(self, message: Message) -> None:
        """Deliver ``message``; raise if the connection is gone."""


class LifeCycle(ABC):
    """Hooks called over the life of a client connection."""

    @abstractmethod
    def new_conn_id(self, protocol: Protocol) -> str: ...

    @abstractmethod
    def on_conn_create(self, conn: Any) -> None: ...

    @abstractmethod
    def on_message_incoming(self, conn_id: str, protocol: Protocol, message: Message) -> None: ...

    @abstractmethod
    def on_conn_destroy(self, conn: Any) -> None: ...

    @abstractmethod
    def should_timeout(self) -> bool: ...


class Dispatch(ABC):
    """Routes an incoming client message to an upstream service."""

    @abstractmethod
    async def dispatch(self, namespace: str, request: MessageReq) -> bool: ...


class BuiltinService(ABC):
    """A service handled inside the server rather than upstream."""

    @abstractmethod
    async def on_message(self, conn_id: str, peer_addr: Any, message: Message) -> None: ...


class CoreOperation(ABC):
    """Channel and push operations offered by a node or a cluster."""

    @abstractmethod
    async def subscribe(self, request: SubReq) -> bool: ...

    @abstractmethod
    async def unsubscribe(self, request: UnSubReq) -> bool: ...

    @abstractmethod
    async def bulk_subscribe(self, request: BulkSubReq) -> bool: ...

    @abstractmethod
    async def publish(self, request: PubReq) -> PubResp: ...

    @abstractmethod
    async def push_conn(self, request: PushConnReq) -> bool: ...

    @abstractmethod
    async def get_conn_channels(self, request: GetConnsReq) -> list[ConnChannels]: ...

    @abstractmethod
    async def get_channels(self, request: GetChannelsReq) -> list[str]: ...


class PushConn(ABC):
    """Pushes a message to a single connection."""

    @abstractmethod
    async def push(self, request: PushConnReq) -> None: ...


class LinkService(ABC):
    """The peer-to-peer service exposed by every node."""

    @abstractmethod
    async def subscribe(self, request: SubReq) -> SubResp: ...

    @abstractmethod
    async def unsubscribe(self, request: UnSubReq) -> UnSubResp: ...

    @abstractmethod
    async def bulk_subscribe(self, request: BulkSubReq) -> BulkSubResp: ...

    @abstractmethod
    async def push_conn(self, request: PushConnReq) -> PushConnResp: ...

    @abstractmethod
    async def publish(self, request: PubReq) -> PubResp: ...

    @abstractmethod
    async def bulk_publish(self, request: BulkPubReq) -> BulkPubResp: ...

    @abstractmethod
    async def get_conn_channels(self, request: GetConnsReq) -> GetConnsResp: ...

    @abstractmethod
    async def get_channels(self, request: GetChannelsReq) -> GetChannelsResp: ...


class NodeOperation(ABC):
    """Knowledge about which node this process is."""

    @abstractmethod
    def is_myself(self, node_id: str) -> bool: ...