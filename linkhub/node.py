"""Descriptions of cluster nodes and upstream service instances."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from .utils import now_ts_milli

_U64_MAX = 2**64 - 1


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _as_uint(value: Any, key: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ValueError(f"field `{key}` must be an integer in 0..={maximum}")
    return value


def _as_opt_str(value: Any, key: str) -> str | None:
    return None if value is None else _as_str(value, key)


@dataclass(eq=False)
class ServerNode:
    """A node of the cluster; identity is the node id."""

    node_id: str
    hostname: str
    port: int = 0
    outer_grpc_port: int = 0
    zone: str | None = None
    created_ts: int = field(default_factory=now_ts_milli)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServerNode):
            return NotImplemented
        return self.node_id == other.node_id

    def __hash__(self) -> int:
        return hash(self.node_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "node_id": self.node_id,
            "hostname": self.hostname,
            "port": self.port,
            "outer_grpc_port": self.outer_grpc_port,
            "created_ts": self.created_ts,
        }
        if self.zone is not None:
            data["zone"] = self.zone
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServerNode:
        return cls(
            node_id=_as_str(_require(data, "node_id"), "node_id"),
            hostname=_as_str(_require(data, "hostname"), "hostname"),
            port=_as_uint(_require(data, "port"), "port", 0xFFFF),
            outer_grpc_port=_as_uint(_require(data, "outer_grpc_port"), "outer_grpc_port", 0xFFFF),
            created_ts=_as_uint(_require(data, "created_ts"), "created_ts", _U64_MAX),
            zone=_as_opt_str(data.get("zone"), "zone"),
        )


@dataclass
class RegistryNode:
    listen_addr: str = ""
    use_ssl: bool = False


@dataclass(eq=False)
class ServiceNode:
    """An upstream service instance; identity is the instance id."""

    service_id: str
    instance_id: str
    host: str
    port: int = 0
    created_ts: int | None = None
    zone: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServiceNode):
            return NotImplemented
        return self.instance_id == other.instance_id

    def __hash__(self) -> int:
        return hash(self.instance_id)

    @classmethod
    def from_server_node(cls, service_id: str, node: ServerNode) -> ServiceNode:
        return cls(
            service_id=service_id,
            instance_id=node.node_id,
            host=node.hostname,
            port=node.outer_grpc_port,
            created_ts=node.created_ts,
            zone=node.zone,
        )

    def to_json(self) -> str:
        data: dict[str, Any] = {
            "instanceId": self.instance_id,
            "serviceId": self.service_id,
            "host": self.host,
            "port": self.port,
            "createdTs": self.created_ts,
        }
        if self.zone is not None:
            data["zone"] = self.zone
        return json.dumps(data)

    @classmethod
    def from_json(cls, text: str) -> ServiceNode:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("service node must be a JSON object")
        created = data.get("createdTs")
        return cls(
            service_id=_as_str(_require(data, "serviceId"), "serviceId"),
            instance_id=_as_str(_require(data, "instanceId"), "instanceId"),
            host=_as_str(_require(data, "host"), "host"),
            port=_as_uint(_require(data, "port"), "port", 0xFFFF),
            created_ts=None if created is None else _as_uint(created, "createdTs", _U64_MAX),
            zone=_as_opt_str(data.get("zone"), "zone"),
        )