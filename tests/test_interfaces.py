import pytest

from linkhub.ids import IdGen, node_id_of
from linkhub.interfaces import (
    CoreOperation,
    Dispatch,
    LifeCycle,
    NodeOperation,
    Protocol,
    SendMessage,
    Switches,
)


@pytest.mark.parametrize(
    "protocol, text",
    [(Protocol.TCP, "tcp"), (Protocol.WEBSOCKET, "ws"), (Protocol.QUIC, "quic")],
)
def test_protocol_display(protocol, text):
    assert str(protocol) == text


def test_protocol_lookup_by_value():
    assert Protocol(str(Protocol.WEBSOCKET)) is Protocol.WEBSOCKET


@pytest.mark.parametrize("abstract", [SendMessage, LifeCycle, Dispatch, CoreOperation, NodeOperation])
def test_abstract_roles_cannot_be_instantiated(abstract):
    with pytest.raises(TypeError):
        abstract()


def test_switches_default_off():
    switches = Switches()
    assert not switches.user_port_listen
    assert not switches.user_conn_stop


def test_switches_are_mutable():
    switches = Switches()
    switches.user_conn_stop = True
    assert switches.user_conn_stop


def test_node_operation_recognises_own_conn_ids():
    class Node(NodeOperation):
        def is_myself(self, node_id):
            return node_id == "self"

    node = Node()
    own_id = node_id_of(IdGen("self").conn_id(Protocol.TCP))
    other_id = node_id_of(IdGen("other").conn_id(Protocol.TCP))
    assert own_id == "self"
    assert node.is_myself(own_id)
    assert not node.is_myself(other_id)