# linkhub

Building blocks for a gateway that holds many long-lived client connections
and routes messages between them and backend services. Everything here is
plain Python with no third-party dependencies; the asynchronous parts run on
`asyncio`.

## What is in the package

- `linkhub.repository.MemoryRepository`: a thread-safe, in-memory index
  from connections to the channels they subscribe to, and from each channel
  (`index_key(namespace, channel_family, channel)`) back to its subscribers.
- `linkhub.operator.CoreOperator`: keeps the live connections of one node.
  It registers and unregisters connections, handles subscribe, unsubscribe
  and bulk subscribe, publishes to the matching connections, pushes to a
  single connection and hands incoming client messages to a `Dispatch`
  implementation as a background task. A missing channel family means
  `"default"`.
- `linkhub.lifecycle.ConnLifeCycle`: the `LifeCycle` hooks for a connection.
  Messages whose namespace has a `BuiltinService` go to that service; all
  others are dispatched through the operator. `should_timeout()` reports the
  `user_conn_stop` flag of a `linkhub.interfaces.Switches`.
- `linkhub.conn.ConnContext` and `linkhub.conn.Conn`: one live connection
  and a handle on it. Handles compare and hash by connection id. A failed
  delivery raises `linkhub.conn.PushError`.
- `linkhub.cluster.ClusterForwarder`: sends requests to peer nodes, given a
  mapping from node id to `LinkService`. Each call is bounded by a timeout
  (500 ms by default). Publishes go to every peer and the answers are
  merged; with `BulkSettings(enable=True, ...)` several publishes are batched
  into one `bulk_publish` per peer, flushed by a `BulkTrigger` on a time or
  size limit.
- `linkhub.cluster_operator.ClusterOperator`: a `CoreOperation` for the whole
  cluster. A request for a connection owned by this node (as told by a
  `NodeOperation`) runs locally; otherwise it is forwarded to the owner.
  Publishes and queries combine local and peer answers.
- `linkhub.server.ServerStub`: the `LinkService` that peers call, wrapping
  any `CoreOperation`. Because peers are just `LinkService` objects, stubs
  can be wired to forwarders in-process.
- `linkhub.messages`: the request, response and message dataclasses.
- `linkhub.ids.IdGen`: connection ids of the form `node_ts_seq_protocol`;
  `linkhub.ids.node_id_of` reads the node id back.
- `linkhub.node`: `ServerNode`, `RegistryNode` and `ServiceNode`, with dict
  and camelCase JSON conversion.
- `linkhub.config.FPConfig`: typed access to settings such as listen
  addresses, timeouts, and the `service_N` and `hproxy_N` tables.
- `linkhub.client`: client-side `State` and `NetworkType` enums, `now_ts()`
  and `ClientIdGen` for ids of the form `protocol_addr_ts_seq`.
- `linkhub.utils`: `now_ts_milli()`, `now_ts_micro()` and `locked()`, a lock
  context manager that raises `DeadlockError` after a timeout (20 s by
  default).

## Install

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## A short example

```python
import asyncio

from linkhub.conn import ConnContext
from linkhub.ids import IdGen
from linkhub.interfaces import Dispatch, Protocol, SendMessage
from linkhub.lifecycle import ConnLifeCycle
from linkhub.messages import Message, PubReq, SubReq
from linkhub.operator import CoreOperator
from linkhub.utils import now_ts_milli


class PrintDispatcher(Dispatch):
    async def dispatch(self, namespace, request):
        print("to backend:", namespace, request.cid, request.channels)
        return True


class PrintSender(SendMessage):
    def send(self, message):
        print("to client:", message.namespace, message.path)


async def main():
    operator = CoreOperator(PrintDispatcher())
    lifecycle = ConnLifeCycle(operator, IdGen("node-a"))

    context = ConnContext(
        proto=Protocol.TCP,
        timeout=60,
        create_time=now_ts_milli(),
        conn_id=lifecycle.new_conn_id(Protocol.TCP),
        sender=PrintSender(),
        lifecycle=lifecycle,
    )
    context.on_conn_create()  # registers the connection with the operator

    await operator.subscribe(
        SubReq(cid=context.conn_id, namespace="news", channel_family="uid", channel="42")
    )
    resp = await operator.publish(
        PubReq(
            message=Message(namespace="news", path="/latest"),
            channel_family="uid",
            channels=["42"],
        )
    )
    print(resp.success, resp.channels)  # True ['42']

    # A message from the client goes upstream in a background task.
    task = lifecycle.on_message_incoming(
        context.conn_id, Protocol.TCP, Message(namespace="news", path="/hello")
    )
    await task

    context.on_conn_destroy()


asyncio.run(main())
```

## Configuration

`FPConfig(values)` wraps a mapping; nested tables are flattened into dotted
keys and keys are matched without regard to case. `FPConfig.load(path,
environ)` reads a TOML file (by default `./resources/fplink_config.toml`,
skipped if it does not exist) and then environment variables with the
`FPLINK_` prefix, which override the file.

`get_str`, `get_int` and `get_bool` raise `ConfigError` for a missing or
ill-typed key. The named accessors fall back to defaults instead: for
example `conn_listen_addr()` returns `0.0.0.0:8082`,
`cluster_grpc_timeout_ms()` returns `500` and `hproxy_timeout()` returns
`10000`.

`service_map()` reads `service_1`, `service_2`, ... as
`namespace#etcd_name[#fallback]`; `hproxy_map()` reads `hproxy_1`, ... as
`origin#rewrite[#timeout_ms]`. Reading stops at the first missing index, and
malformed entries are skipped with a warning.

## What the package does not do

- It opens no sockets. There is no TCP, WebSocket or QUIC listener for
  clients, and no wire protocol or RPC server for peers: `LinkService`,
  `Dispatch` and `SendMessage` are interfaces for your transport to
  implement.
- It does no service discovery or node registration; peer clients and
  `NodeOperation` must be supplied by the caller.
- It has no client link that connects, reconnects or pings; `linkhub.client`
  holds only states, network kinds and id generation.
- It has no command-line program.