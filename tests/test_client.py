import time

from linkhub.client import ClientIdGen, NetworkType, State, now_ts


def test_now_ts_is_epoch_millis():
    before = time.time_ns() // 1_000_000
    ts = now_ts()
    after = time.time_ns() // 1_000_000
    assert before <= ts <= after


def test_generate_format():
    gen = ClientIdGen()
    addr = "1.2.3.4"
    before = now_ts()
    unique_id = gen.generate(addr, "tcp")
    after = now_ts()
    protocol, got_addr, ts, seq = unique_id.split("_")
    assert protocol == "tcp"
    assert got_addr == addr
    assert before <= int(ts) <= after
    assert seq == "1"


def test_generate_sequence_increments_and_is_unique():
    gen = ClientIdGen()
    ids = [gen.generate("127.0.0.1:8082", "tcp") for _ in range(50)]
    assert len(set(ids)) == 50
    seqs = [int(i.rsplit("_", 1)[1]) for i in ids]
    assert seqs == list(range(1, 51))


def test_state_values():
    assert int(State.INIT) == 1
    assert int(State.CONNECTING) == 2
    assert int(State.CONNECTED) == 3
    assert int(State.DISCONNECTED) == 4
    assert int(State.CLOSED) == 5
    assert State(3) is State.CONNECTED


def test_network_types_round_trip_by_value():
    members = list(NetworkType)
    assert len(members) == 7
    assert len({m.value for m in members}) == 7
    for member in members:
        assert NetworkType(member.value) is member
    assert NetworkType(NetworkType.TYPE_WIFI.value) is NetworkType["TYPE_WIFI"]