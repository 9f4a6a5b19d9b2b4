"""Request, response and message records exchanged between components."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Message:
    namespace: str = ""
    path: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    expire_at: int | None = None


@dataclass
class SubReq:
    cid: str = ""
    namespace: str = ""
    channel_family: str | None = None
    channel: str = ""


@dataclass
class SubResp:
    success: bool = False


@dataclass
class UnSubReq:
    cid: str = ""
    namespace: str = ""
    channel_family: str | None = None
    channel: str = ""


@dataclass
class UnSubResp:
    success: bool = False


@dataclass
class BulkSubReq:
    cid: str = ""
    namespace: str = ""
    channels: dict[str, str] = field(default_factory=dict)


@dataclass
class BulkSubResp:
    success: bool = False


@dataclass
class PushConnReq:
    cid: str = ""
    message: Message | None = None


@dataclass
class PushConnResp:
    success: bool = False
    sent: bool = False


@dataclass
class ConnChannels:
    """Channels a connection holds, keyed by channel family."""

    cid: str = ""
    channels: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class PubStatus:
    conn_channels: ConnChannels | None = None
    sent: bool = False


@dataclass
class PubReq:
    message: Message | None = None
    channel_family: str | None = None
    channels: list[str] = field(default_factory=list)


@dataclass
class PubResp:
    success: bool = False
    channels: list[str] = field(default_factory=list)
    status: list[PubStatus] = field(default_factory=list)


@dataclass
class BulkPubReq:
    requests: list[PubReq] = field(default_factory=list)


@dataclass
class BulkPubResp:
    responses: list[PubResp] = field(default_factory=list)


@dataclass
class GetConnsReq:
    namespace: str = ""
    channel_family: str | None = None
    channel: str = ""


@dataclass
class GetConnsResp:
    success: bool = False
    conn_channels: list[ConnChannels] = field(default_factory=list)


@dataclass
class GetChannelsReq:
    namespace: str = ""
    channel_family: str | None = None
    channels: list[str] | None = None


@dataclass
class GetChannelsResp:
    namespace: str = ""
    channel_family: str | None = None
    channels: list[str] | None = None


@dataclass
class MessageReq:
    """A client message forwarded to an upstream service."""

    cid: str = ""
    message: Message | None = None
    channels: dict[str, list[str]] = field(default_factory=dict)
    trace: dict[str, str] | None = None