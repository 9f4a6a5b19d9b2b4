"""Client connections as seen by the server core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .interfaces import LifeCycle, Protocol, SendMessage
from .messages import Message


class PushError(Exception):
    """A message could not be delivered to a connection."""


@dataclass(eq=False)
class ConnContext:
    """State and hooks attached to one live client connection."""

    proto: Protocol
    timeout: int
    create_time: int
    conn_id: str
    sender: SendMessage
    lifecycle: LifeCycle
    peer_addr: Any = None

    def send(self, message: Message) -> None:
        """Deliver ``message`` to the client; raise PushError on failure."""
        try:
            self.sender.send(message)
        except PushError:
            raise
        except Exception as exc:
            raise PushError(f"send to {self.conn_id} failed: {exc}") from exc

    def accept_message(self, message: Message) -> None:
        """Hand a message received from the socket to the server core."""
        self.lifecycle.on_message_incoming(self.conn_id, self.proto, message)

    def on_conn_create(self) -> None:
        self.lifecycle.on_conn_create(Conn(self))

    def on_conn_destroy(self) -> None:
        self.lifecycle.on_conn_destroy(Conn(self))

    def should_timeout(self) -> bool:
        return self.lifecycle.should_timeout()


class Conn:
    """A handle on a connection; two handles are equal when their ids are."""

    __slots__ = ("inner",)

    def __init__(self, inner: ConnContext) -> None:
        self.inner = inner

    @property
    def id(self) -> str:
        return self.inner.conn_id

    @property
    def protocol(self) -> Protocol:
        return self.inner.proto

    @property
    def create_time(self) -> int:
        return self.inner.create_time

    @property
    def peer_addr(self) -> Any:
        return self.inner.peer_addr

    def push(self, message: Message) -> None:
        """Deliver ``message`` to the client; raise PushError on failure."""
        self.inner.send(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Conn):
            return NotImplemented
        return self.inner.conn_id == other.inner.conn_id

    def __hash__(self) -> int:
        return hash(self.inner.conn_id)

    def __repr__(self) -> str:
        return f"Conn {{ id: {self.inner.conn_id} ,proto: {self.inner.proto} }}"