"""Server configuration read from a TOML file and the environment."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./resources/fplink_config.toml"
ENV_PREFIX = "fplink_"

_TRUE_WORDS = {"1", "true", "on", "yes"}
_FALSE_WORDS = {"0", "false", "off", "no"}
_UINT_RE = re.compile(r"\+?[0-9]+")


class ConfigError(Exception):
    """A configuration value is missing or has the wrong type."""


@dataclass
class Service:
    etcd_name: str
    fallback_addr: str | None = None


@dataclass
class Hproxy:
    origin_url: str
    rewrite_url: str
    timeout: int


def _flatten(table: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in table.items():
        full = f"{prefix}{key}".lower()
        if isinstance(value, Mapping):
            flat.update(_flatten(value, full + "."))
        else:
            flat[full] = value
    return flat


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"value {value!r} cannot be read as a string")


class FPConfig:
    """Typed access to configuration values with the server's defaults."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values = _flatten(values or {})

    @classmethod
    def load(
        cls,
        path: str | os.PathLike[str] = DEFAULT_CONFIG_PATH,
        environ: Mapping[str, str] | None = None,
    ) -> FPConfig:
        """Read the TOML file if it exists, then overlay ``FPLINK_*`` variables."""
        values: dict[str, Any] = {}
        file = Path(path)
        if file.exists():
            log.info("config load from file %s", file)
            try:
                with file.open("rb") as handle:
                    values.update(_flatten(tomllib.load(handle)))
            except (OSError, tomllib.TOMLDecodeError) as exc:
                raise ConfigError(f"merge config file error: {exc}") from exc
        else:
            log.info("%s not found!", file)

        env = os.environ if environ is None else environ
        for name, value in env.items():
            lowered = name.lower()
            if lowered.startswith(ENV_PREFIX) and len(lowered) > len(ENV_PREFIX):
                values[lowered[len(ENV_PREFIX):]] = value
        return cls(values)

    def _raw(self, key: str) -> Any:
        try:
            return self._values[key.lower()]
        except KeyError:
            raise ConfigError(f"configuration property {key!r} not found") from None

    def get_str(self, key: str) -> str:
        return _display(self._raw(key))

    def get_int(self, key: str) -> int:
        value = self._raw(key)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return round(value)
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in ("true", "on", "yes"):
                return 1
            if lowered in ("false", "off", "no"):
                return 0
            try:
                return int(value)
            except ValueError:
                pass
        raise ConfigError(f"{key!r} is not an integer: {value!r}")

    def get_bool(self, key: str) -> bool:
        value = self._raw(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in _TRUE_WORDS:
                return True
            if lowered in _FALSE_WORDS:
                return False
        raise ConfigError(f"{key!r} is not a boolean: {value!r}")

    def _get_uint(self, key: str) -> int:
        value = self.get_int(key)
        if value < 0:
            raise ConfigError(f"{key!r} must not be negative")
        return value

    def _str_or(self, key: str, default: str) -> str:
        try:
            return self.get_str(key)
        except ConfigError:
            return default

    def _int_or(self, key: str, default: int) -> int:
        try:
            return self.get_int(key)
        except ConfigError:
            return default

    def _lines(self) -> list[str]:
        return [
            f"_fplink_conf||config={key} => {_display(value)}"
            for key, value in self._values.items()
            if not isinstance(value, list)
        ]

    def config_content(self) -> str:
        return "".join(f"{line}\r\n" for line in self._lines())

    def show_config(self) -> None:
        for line in self._lines():
            log.info("%s", line)

    def cert_path(self) -> str | None:
        try:
            path = self.get_str("cert_path")
        except ConfigError:
            return None
        return path if path.strip() else None

    def cert_path_quic(self) -> str | None:
        try:
            path = self.get_str("cert_path_quic")
        except ConfigError:
            return self.cert_path()
        return path if path.strip() else self.cert_path()

    def etcd_addr(self) -> str:
        return self._str_or("etcd", "localhost:2379")

    def service_id(self) -> str:
        return self._str_or("service_id", "fplink--grpc")

    def etcd_prefix_base(self) -> str:
        prefix = self._str_or("etcd_prefix", "/")
        return prefix if prefix.endswith("/") else prefix + "/"

    def etcd_prefix_broadcast(self) -> str:
        try:
            prefix = self.get_str("etcd_prefix_broadcast")
        except ConfigError:
            prefix = self.etcd_prefix_base()
        return prefix if prefix.endswith("/") else prefix + "/"

    def conn_listen_addr(self) -> str:
        return self._str_or("listen_addr", "0.0.0.0:8082")

    def conn_listen_addr_deprecated(self) -> str:
        return self._str_or("listen_addr2", "0.0.0.0:8083")

    def peer_listen_addr(self) -> str:
        return self._str_or("peer_listen_addr", "0.0.0.0:6321")

    def service_listen_addr(self) -> str:
        return self._str_or("listen_service_addr", "0.0.0.0:1215")

    def hostname(self) -> str:
        return self._str_or("hostname", "127.0.0.1")

    def zone(self) -> str | None:
        try:
            return self.get_str("zone")
        except ConfigError:
            return None

    def _numbered(self, prefix: str):
        index = 1
        while True:
            try:
                yield self.get_str(f"{prefix}_{index}")
            except ConfigError:
                return
            index += 1

    def hproxy_map(self) -> dict[str, Hproxy]:
        """Parse ``hproxy_N`` entries of the form ``origin#rewrite[#timeout]``."""
        proxies: dict[str, Hproxy] = {}
        for entry in self._numbered("hproxy"):
            tokens = entry.strip().split("#")
            origin_url = tokens[0].strip()
            if not origin_url or len(tokens) < 2 or not tokens[1].strip():
                log.warning("invalid hproxy %s", entry)
                continue
            timeout = self.hproxy_timeout()
            if len(tokens) > 2:
                raw = tokens[2].strip()
                if _UINT_RE.fullmatch(raw):
                    timeout = int(raw)
                else:
                    log.warning("parse timeout failed %s", entry)
            else:
                log.warning("hproxy %s not set timeout", entry)
            proxies[origin_url] = Hproxy(origin_url, tokens[1].strip(), timeout)
        return proxies

    def service_map(self) -> dict[str, Service]:
        """Parse ``service_N`` entries of the form ``namespace#etcd_name[#fallback]``."""
        services: dict[str, Service] = {}
        for entry in self._numbered("service"):
            tokens = entry.strip().split("#")
            namespace = tokens[0].strip()
            if not namespace or len(tokens) < 2 or not tokens[1].strip():
                log.warning("invalid service %s", entry)
                continue
            fallback = None
            if len(tokens) > 2:
                fallback = tokens[2].strip()
            else:
                log.warning("service %s not set fallback addr", entry)
            services[namespace] = Service(tokens[1].strip(), fallback)
        return services

    def cluster_grpc_timeout_ms(self) -> int:
        return self._int_or("grpc_cluster_timeout_ms", 500)

    def service_grpc_timeout_ms(self) -> int:
        try:
            return self.get_int("service_grpc_timeout_ms")
        except ConfigError:
            return self._int_or("biz_grpc_timeout_ms", 1000)

    def hproxy_timeout(self) -> int:
        try:
            return self._get_uint("hproxy_http_timeout_ms")
        except ConfigError:
            return 10_000

    def quic_trace_log(self) -> bool:
        try:
            return self.get_bool("quic_trace_log")
        except ConfigError:
            return False

    def worker_num(self) -> int:
        try:
            num = self.get_int("runtime_worker_num")
        except ConfigError:
            num = os.cpu_count() or 1
        log.info("runtime_worker_num is: %s", num)
        return num

    def codec_size(self) -> int:
        return self._int_or("tokio_codec_size", 8 * 1024)

    def log_directory(self) -> str:
        return self._str_or("log_directory", "/tmp/fplink")