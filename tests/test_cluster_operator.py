import asyncio

import pytest

from linkhub.cluster import ClusterForwarder
from linkhub.cluster_operator import ClusterOperator
from linkhub.conn import Conn, ConnContext
from linkhub.ids import IdGen
from linkhub.interfaces import Dispatch, LifeCycle, LinkService, NodeOperation, Protocol, SendMessage
from linkhub.messages import (
    BulkSubReq,
    GetChannelsReq,
    GetConnsReq,
    Message,
    PubReq,
    PushConnReq,
    SubReq,
    UnSubReq,
)
from linkhub.operator import CoreOperator
from linkhub.server import ServerStub


class Recorder(SendMessage):
    def __init__(self):
        self.messages = []

    def send(self, message):
        self.messages.append(message)


class Quiet(LifeCycle):
    def new_conn_id(self, protocol):
        return "some_conn_id"

    def on_conn_create(self, conn):
        pass

    def on_message_incoming(self, conn_id, protocol, message):
        pass

    def on_conn_destroy(self, conn):
        pass

    def should_timeout(self):
        return False


class NoDispatch(Dispatch):
    async def dispatch(self, namespace, request):
        return True


class Node(NodeOperation):
    def __init__(self, me):
        self.me = me

    def is_myself(self, node_id):
        return node_id == self.me


class Broken(LinkService):
    async def subscribe(self, request):
        raise RuntimeError("down")

    async def unsubscribe(self, request):
        raise RuntimeError("down")

    async def bulk_subscribe(self, request):
        raise RuntimeError("down")

    async def push_conn(self, request):
        raise RuntimeError("down")

    async def publish(self, request):
        raise RuntimeError("down")

    async def bulk_publish(self, request):
        raise RuntimeError("down")

    async def get_conn_channels(self, request):
        raise RuntimeError("down")

    async def get_channels(self, request):
        raise RuntimeError("down")


class Slow(Broken):
    async def subscribe(self, request):
        await asyncio.sleep(1)
        raise RuntimeError("unreachable")


def register(core, node_id):
    sender = Recorder()
    cid = IdGen(node_id).conn_id(Protocol.TCP)
    core.reg_conn(Conn(ConnContext(Protocol.TCP, 60, 1234, cid, sender, Quiet())))
    return cid, sender


class Cluster:
    def __init__(self):
        self.core_a = CoreOperator(NoDispatch())
        self.core_b = CoreOperator(NoDispatch())
        self.cid_a, self.sender_a = register(self.core_a, "nodeA")
        self.cid_b, self.sender_b = register(self.core_b, "nodeB")
        forwarder = ClusterForwarder({"nodeB": ServerStub("nodeB:6321", self.core_b)})
        self.op = ClusterOperator(Node("nodeA"), self.core_a, forwarder)


@pytest.mark.asyncio
async def test_subscribe_local_stays_on_this_node():
    c = Cluster()
    assert await c.op.subscribe(SubReq(cid=c.cid_a, namespace="ns", channel="c1"))
    assert c.core_a.list_channels(c.cid_a, "ns") == {"default": {"c1"}}
    assert c.core_b.list_channels(c.cid_a, "ns") is None


@pytest.mark.asyncio
async def test_subscribe_remote_is_forwarded():
    c = Cluster()
    assert await c.op.subscribe(SubReq(cid=c.cid_b, namespace="ns", channel="c1"))
    assert c.core_b.list_channels(c.cid_b, "ns") == {"default": {"c1"}}
    assert c.core_a.list_channels(c.cid_b, "ns") is None


@pytest.mark.asyncio
async def test_unknown_node_fails():
    c = Cluster()
    cid = IdGen("nodeC").conn_id(Protocol.TCP)
    assert await c.op.subscribe(SubReq(cid=cid, namespace="ns", channel="c1")) is False
    assert await c.op.push_conn(PushConnReq(cid=cid, message=Message())) is False


@pytest.mark.asyncio
async def test_unsubscribe_remote():
    c = Cluster()
    await c.op.subscribe(SubReq(cid=c.cid_b, namespace="ns", channel="c1"))
    assert await c.op.unsubscribe(UnSubReq(cid=c.cid_b, namespace="ns", channel="c1"))
    assert c.core_b.list_channels(c.cid_b, "ns") == {"default": set()}


@pytest.mark.asyncio
async def test_bulk_subscribe_both_nodes():
    c = Cluster()
    channels = {"uid": "2001", "os": "ios"}
    assert await c.op.bulk_subscribe(BulkSubReq(cid=c.cid_a, namespace="ns", channels=channels))
    assert await c.op.bulk_subscribe(BulkSubReq(cid=c.cid_b, namespace="ns", channels=channels))
    expected = {"uid": {"2001"}, "os": {"ios"}}
    assert c.core_a.list_channels(c.cid_a, "ns") == expected
    assert c.core_b.list_channels(c.cid_b, "ns") == expected


@pytest.mark.asyncio
async def test_push_conn_remote_delivers():
    c = Cluster()
    message = Message(namespace="ns", path="/p", body=b"\x01\x02")
    assert await c.op.push_conn(PushConnReq(cid=c.cid_b, message=message))
    assert c.sender_b.messages == [message]
    assert c.sender_a.messages == []


@pytest.mark.asyncio
async def test_publish_merges_local_and_cluster():
    c = Cluster()
    await c.op.subscribe(SubReq(cid=c.cid_a, namespace="ns", channel="c1"))
    await c.op.subscribe(SubReq(cid=c.cid_b, namespace="ns", channel="c2"))
    message = Message(namespace="ns")
    resp = await c.op.publish(PubReq(message=message, channels=["c1", "c2"]))
    assert resp.success
    assert resp.channels == ["c1", "c2"]
    assert [s.conn_channels.cid for s in resp.status] == [c.cid_b, c.cid_a]
    assert c.sender_a.messages == [message]
    assert c.sender_b.messages == [message]


@pytest.mark.asyncio
async def test_publish_removes_duplicate_channels():
    c = Cluster()
    await c.op.subscribe(SubReq(cid=c.cid_a, namespace="ns", channel="c1"))
    await c.op.subscribe(SubReq(cid=c.cid_b, namespace="ns", channel="c1"))
    resp = await c.op.publish(PubReq(message=Message(namespace="ns"), channels=["c1"]))
    assert resp.channels == ["c1"]
    assert len(resp.status) == 2


@pytest.mark.asyncio
async def test_publish_without_message_fails():
    c = Cluster()
    resp = await c.op.publish(PubReq(message=None, channels=["c1"]))
    assert resp.success is False
    assert resp.channels == []


@pytest.mark.asyncio
async def test_get_conn_channels_cluster_first():
    c = Cluster()
    await c.op.subscribe(SubReq(cid=c.cid_a, namespace="ns", channel="c1"))
    await c.op.subscribe(SubReq(cid=c.cid_b, namespace="ns", channel="c1"))
    result = await c.op.get_conn_channels(GetConnsReq(namespace="ns", channel="c1"))
    assert [cc.cid for cc in result] == [c.cid_b, c.cid_a]


@pytest.mark.asyncio
async def test_get_channels_appends_both():
    c = Cluster()
    await c.op.subscribe(SubReq(cid=c.cid_a, namespace="ns", channel="c1"))
    await c.op.subscribe(SubReq(cid=c.cid_b, namespace="ns", channel="c2"))
    result = await c.op.get_channels(GetChannelsReq(namespace="ns", channels=["c1", "c2"]))
    assert result == ["c2", "c1"]


@pytest.mark.asyncio
async def test_broken_peer_fails_forwarded_but_publish_keeps_local():
    core = CoreOperator(NoDispatch())
    cid_a, sender_a = register(core, "nodeA")
    op = ClusterOperator(Node("nodeA"), core, ClusterForwarder({"nodeB": Broken()}))
    cid_b = IdGen("nodeB").conn_id(Protocol.TCP)
    assert await op.subscribe(SubReq(cid=cid_b, namespace="ns", channel="c1")) is False
    await op.subscribe(SubReq(cid=cid_a, namespace="ns", channel="c1"))
    resp = await op.publish(PubReq(message=Message(namespace="ns"), channels=["c1"]))
    assert resp.success
    assert resp.channels == ["c1"]
    assert len(sender_a.messages) == 1


@pytest.mark.asyncio
async def test_slow_peer_times_out():
    core = CoreOperator(NoDispatch())
    op = ClusterOperator(Node("nodeA"), core, ClusterForwarder({"nodeB": Slow()}, timeout_ms=10))
    cid_b = IdGen("nodeB").conn_id(Protocol.TCP)
    assert await op.subscribe(SubReq(cid=cid_b, namespace="ns", channel="c1")) is False