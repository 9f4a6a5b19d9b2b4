"""Connection lifecycle hooks wired to the core operator."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from .conn import Conn
from .ids import IdGen
from .interfaces import BuiltinService, LifeCycle, Protocol, Switches
from .messages import Message
from .operator import CoreOperator

log = logging.getLogger(__name__)


class ConnLifeCycle(LifeCycle):
    """Registers connections and routes their messages."""

    def __init__(
        self,
        operator: CoreOperator,
        cid_gen: IdGen,
        builtin_services: Mapping[str, BuiltinService] | None = None,
        switches: Switches | None = None,
    ) -> None:
        self._operator = operator
        self._cid_gen = cid_gen
        self._builtin_services = dict(builtin_services or {})
        self._switches = switches if switches is not None else Switches()
        self._tasks: set[asyncio.Task[Any]] = set()

    def _peer_addr(self, conn_id: str) -> Any:
        conn = self._operator.conn(conn_id)
        return None if conn is None else conn.peer_addr

    def new_conn_id(self, protocol: Protocol) -> str:
        return self._cid_gen.conn_id(protocol)

    def on_conn_create(self, conn: Conn) -> None:
        self._operator.reg_conn(conn)

    def on_message_incoming(
        self, conn_id: str, protocol: Protocol, message: Message
    ) -> asyncio.Task[Any]:
        """Hand ``message`` to a builtin service or dispatch it upstream.

        Must be called with an event loop running; returns the background task.
        """
        service = self._builtin_services.get(message.namespace)
        if service is None:
            return self._operator.dispatch_message(conn_id, message)
        peer_addr = self._peer_addr(conn_id)
        task = asyncio.get_running_loop().create_task(
            service.on_message(conn_id, peer_addr, message)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def on_conn_destroy(self, conn: Conn) -> None:
        self._operator.unreg_conn(conn)

    def should_timeout(self) -> bool:
        return self._switches.user_conn_stop