import threading

from linkhub.ids import IdGen, node_id_of
from linkhub.interfaces import Protocol


def test_generate_extract():
    node_id = "this-is-fake-node-id"
    id_generator = IdGen(node_id)
    generated = id_generator.conn_id(Protocol.QUIC)
    assert node_id_of(generated) == node_id


def test_id_shape():
    conn_id = IdGen("node").conn_id(Protocol.TCP)
    parts = conn_id.split("_")
    assert len(parts) == 4
    assert parts[0] == "node"
    assert parts[3] == str(Protocol.TCP)
    assert parts[1].isdigit() and parts[2].isdigit()


def test_ids_are_unique():
    gen = IdGen("node")
    ids = [gen.conn_id(Protocol.WEBSOCKET) for _ in range(2000)]
    assert len(set(ids)) == len(ids)


def test_ids_unique_across_threads():
    gen = IdGen("node")
    results = []
    lock = threading.Lock()

    def work():
        local = [gen.conn_id(Protocol.TCP) for _ in range(300)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=work) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(results) == 1200
    assert len(set(results)) == len(results)
    assert {node_id_of(conn_id) for conn_id in results} == {"node"}
    after = gen.conn_id(Protocol.TCP)
    assert after not in results


def test_node_id_of_without_separator():
    assert node_id_of("plain") == "plain"