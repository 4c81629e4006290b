"""
Tests for the Broadcast Engine

Tests for the server's control-code dispatch including:
- Join validation and error replies
- Leave idempotence
- Message fan-out and sender address stamping
- Partial send failures and malformed datagrams
"""

import pytest

from src.nchat.protocol import decode, encode
from src.nchat.schemas import (
    ControlCode,
    Group,
    Member,
    Message,
    current_timestamp,
)
from src.nchat.server import (
    BroadcastEngine,
    ChatServerProtocol,
    ServerState,
    broadcast_to_members,
)

ALICE = ("127.0.0.1", 9090)
BOB = ("127.0.0.1", 9091)
CAROL = ("127.0.0.1", 9092)


class MockTransport:
    """Mock datagram transport recording every send."""

    def __init__(self, unreachable=()):
        self.sent = []
        self.unreachable = set(unreachable)

    def sendto(self, data, addr):
        if addr in self.unreachable:
            raise OSError("Network is unreachable")
        self.sent.append((data, addr))

    def messages(self):
        return [(decode(data), addr) for data, addr in self.sent]


def datagram(
    code,
    text="",
    nickname="alice",
    address=("10.9.9.9", 1),
    timestamp=0,
    group="global",
) -> bytes:
    return encode(
        Message(
            code=code,
            timestamp=timestamp,
            group=Group(group),
            sender=Member(nickname, address),
            text=text,
        )
    )


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def state():
    return ServerState()


@pytest.fixture
def engine(state, transport):
    return BroadcastEngine(state, transport)


def join(engine, src, nickname="alice", group="global"):
    engine.handle_datagram(
        datagram(ControlCode.JOIN_GROUP, group, nickname=nickname), src
    )


# ----------------------------------------------------------------------------
# Dispatch table
# ----------------------------------------------------------------------------


def test_every_control_code_has_a_handler(engine):
    for code in ControlCode:
        assert engine.handler_for(code) is not None


# ----------------------------------------------------------------------------
# JoinGroup
# ----------------------------------------------------------------------------


class TestJoinGroup:
    """Tests for JoinGroup handling."""

    def test_join_adds_member_and_broadcasts(self, engine, state, transport):
        join(engine, ALICE)

        assert state.members == {ALICE}
        sent = transport.messages()
        assert len(sent) == 1
        message, addr = sent[0]
        assert addr == ALICE
        assert message.code is ControlCode.JOIN_GROUP
        assert message.sender.address == ALICE

    def test_join_broadcasts_to_all_members(self, engine, state, transport):
        join(engine, ALICE)
        transport.sent.clear()

        join(engine, BOB, nickname="bob")

        assert state.members == {ALICE, BOB}
        recipients = {addr for _, addr in transport.messages()}
        assert recipients == {ALICE, BOB}

    def test_join_unknown_group_replies_error_only(
        self, engine, state, transport
    ):
        join(engine, ALICE)
        transport.sent.clear()

        join(engine, BOB, nickname="bob", group="nowhere")

        assert state.members == {ALICE}
        sent = transport.messages()
        assert len(sent) == 1
        message, addr = sent[0]
        assert addr == BOB
        assert message.code is ControlCode.ERROR
        assert message.text == "group nowhere not exist"
        assert message.timestamp >= current_timestamp() - 5

    def test_join_validates_group_named_in_text(
        self, engine, state, transport
    ):
        # The message's group field is not what is checked
        engine.handle_datagram(
            encode(
                Message(
                    code=ControlCode.JOIN_GROUP,
                    timestamp=0,
                    group=Group("nowhere"),
                    sender=Member("alice", ALICE),
                    text="global",
                )
            ),
            ALICE,
        )
        assert state.members == {ALICE}

    def test_rejoin_keeps_single_membership(self, engine, state):
        join(engine, ALICE)
        join(engine, ALICE)
        assert state.members == {ALICE}


# ----------------------------------------------------------------------------
# LeaveGroup
# ----------------------------------------------------------------------------


class TestLeaveGroup:
    """Tests for LeaveGroup handling."""

    def test_leave_removes_member_and_notifies_others(
        self, engine, state, transport
    ):
        join(engine, ALICE)
        join(engine, BOB, nickname="bob")
        transport.sent.clear()

        engine.handle_datagram(datagram(ControlCode.LEAVE_GROUP), ALICE)

        assert state.members == {BOB}
        sent = transport.messages()
        assert [addr for _, addr in sent] == [BOB]
        assert sent[0][0].code is ControlCode.LEAVE_GROUP
        assert sent[0][0].sender.address == ALICE

    def test_leave_by_non_member_is_idempotent(
        self, engine, state, transport
    ):
        join(engine, ALICE)
        before = len(state.members)

        engine.handle_datagram(datagram(ControlCode.LEAVE_GROUP), CAROL)

        assert len(state.members) == before
        assert state.members == {ALICE}


# ----------------------------------------------------------------------------
# SendMessage
# ----------------------------------------------------------------------------


class TestSendMessage:
    """Tests for SendMessage fan-out."""

    def test_fan_out_to_every_member(self, engine, transport):
        for i, member in enumerate((ALICE, BOB, CAROL)):
            join(engine, member, nickname=f"user{i}")
        transport.sent.clear()

        # Payload claims a different address than the real source
        engine.handle_datagram(
            datagram(
                ControlCode.SEND_MESSAGE, "hi", address=("6.6.6.6", 666)
            ),
            ALICE,
        )

        assert len(transport.sent) == 3
        assert {addr for _, addr in transport.sent} == {ALICE, BOB, CAROL}
        payloads = {data for data, _ in transport.sent}
        assert len(payloads) == 1

        message = decode(payloads.pop())
        assert message.code is ControlCode.SEND_MESSAGE
        assert message.text == "hi"
        assert message.sender.nickname == "alice"
        assert message.sender.address == ALICE

    def test_timestamp_is_refreshed(self, engine, transport):
        join(engine, ALICE)
        transport.sent.clear()

        engine.handle_datagram(
            datagram(ControlCode.SEND_MESSAGE, "hi", timestamp=0), ALICE
        )

        message, _ = transport.messages()[0]
        assert message.timestamp >= current_timestamp() - 5

    def test_message_from_non_member_is_relayed(
        self, engine, state, transport
    ):
        join(engine, ALICE)
        transport.sent.clear()

        engine.handle_datagram(datagram(ControlCode.SEND_MESSAGE, "hi"), BOB)

        assert [addr for _, addr in transport.sent] == [ALICE]
        assert state.members == {ALICE}

    def test_failed_send_does_not_abort_fan_out(self, state):
        transport = MockTransport(unreachable={BOB})
        engine = BroadcastEngine(state, transport)
        for member in (ALICE, BOB, CAROL):
            state.add_member(member)

        engine.handle_datagram(datagram(ControlCode.SEND_MESSAGE, "hi"), ALICE)

        assert {addr for _, addr in transport.sent} == {ALICE, CAROL}


# ----------------------------------------------------------------------------
# Ignored input
# ----------------------------------------------------------------------------


class TestIgnoredDatagrams:
    """Tests for datagrams the engine must not act upon."""

    def test_error_from_client_is_discarded(self, engine, transport):
        join(engine, ALICE)
        transport.sent.clear()

        engine.handle_datagram(datagram(ControlCode.ERROR, "boom"), ALICE)

        assert transport.sent == []

    def test_exit_server_is_ignored(self, engine, state, transport):
        join(engine, ALICE)
        transport.sent.clear()

        engine.handle_datagram(datagram(ControlCode.EXIT_SERVER), ALICE)

        assert transport.sent == []
        assert state.members == {ALICE}

    @pytest.mark.parametrize(
        "data", [b"", b"\xff\xff", b"{", b'{"code": "JoinGroup"}']
    )
    def test_malformed_datagram_is_ignored(
        self, engine, state, transport, data
    ):
        engine.handle_datagram(data, ALICE)

        assert transport.sent == []
        assert state.members == set()

    def test_no_transport_drops_sends(self, state):
        engine = BroadcastEngine(state)
        engine.handle_datagram(datagram(ControlCode.JOIN_GROUP, "global"), ALICE)
        assert state.members == {ALICE}


# ----------------------------------------------------------------------------
# Fan-out helper
# ----------------------------------------------------------------------------


def test_broadcast_to_members_counts_successful_sends():
    transport = MockTransport(unreachable={BOB})
    sent = broadcast_to_members(transport, b"payload", [ALICE, BOB, CAROL])
    assert sent == 2
    assert transport.sent == [(b"payload", ALICE), (b"payload", CAROL)]


# ----------------------------------------------------------------------------
# Scenario
# ----------------------------------------------------------------------------


def test_join_send_leave_scenario(engine, state, transport):
    """alice joins, says hi, and leaves while bob stays."""
    join(engine, BOB, nickname="bob")
    join(engine, ALICE)
    assert state.members == {ALICE, BOB}

    transport.sent.clear()
    engine.handle_datagram(datagram(ControlCode.SEND_MESSAGE, "hi"), ALICE)
    relayed = transport.messages()
    assert {addr for _, addr in relayed} == {ALICE, BOB}
    assert all(m.text == "hi" and m.sender.address == ALICE for m, _ in relayed)

    transport.sent.clear()
    engine.handle_datagram(datagram(ControlCode.LEAVE_GROUP), ALICE)
    engine.handle_datagram(datagram(ControlCode.EXIT_SERVER), ALICE)
    left = transport.messages()
    assert [(m.code, addr) for m, addr in left] == [
        (ControlCode.LEAVE_GROUP, BOB)
    ]
    assert state.members == {BOB}


def test_protocol_hands_transport_to_engine(state, transport):
    engine = BroadcastEngine(state)
    protocol = ChatServerProtocol(engine)
    protocol.connection_made(transport)

    protocol.datagram_received(
        datagram(ControlCode.JOIN_GROUP, "global"), ALICE
    )

    assert engine.transport is transport
    assert [addr for _, addr in transport.sent] == [ALICE]
