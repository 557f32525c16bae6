from __future__ import annotations

import pytest

import land_controller
from config import Config
from land_controller import LandController


class FakeSerial:
    """Replays canned board replies and keeps what was written"""

    def __init__(self, replies):
        self.replies = list(replies)
        self.written = []
        self.closed = False

    def write(self, data):
        self.written.append(data)

    def readline(self):
        return self.replies.pop(0) if self.replies else b""

    def close(self):
        self.closed = True


@pytest.fixture
def board(monkeypatch):
    """Patch serial.Serial and the reset delay; returns a function to load replies"""
    holder = {}

    def install(*replies):
        fake = FakeSerial(replies)
        holder["serial"] = fake
        monkeypatch.setattr(land_controller.serial, "Serial", lambda **kwargs: fake)
        return fake

    monkeypatch.setattr(land_controller.time, "sleep", lambda s: None)
    return install


def test_connect_handshake(board):
    fake = board(b"PONG\n")
    ctrl = LandController(simulate=False)
    ctrl.connect()

    assert ctrl.is_connected
    assert fake.written == [b"PING\n"]


def test_connect_without_handshake_raises_and_closes(board):
    fake = board(b"garbage\n")
    ctrl = LandController(simulate=False)

    with pytest.raises(ConnectionError):
        ctrl.connect()
    assert fake.closed
    assert not ctrl.is_connected


def test_commands_are_sent_as_verb_value_lines(board):
    fake = board(b"PONG\n", b"DONE\n", b"DONE\n", b"DONE\n", b"DONE\n", b"DONE\n")
    ctrl = LandController(simulate=False)
    ctrl.connect()

    ctrl.forward(30)
    ctrl.back(10)
    ctrl.left(90)
    ctrl.right(180)
    ctrl.stop()

    assert fake.written[1:] == [b"FORWARD:30\n", b"BACKWARD:10\n", b"LEFT:90\n", b"RIGHT:180\n", b"STOP\n"]


def test_ping_parses_distance(board):
    board(b"PONG\n", b"DIST:57\n", b"DIST:120\n", b"DIST:8\n")
    ctrl = LandController(simulate=False)
    ctrl.connect()

    assert ctrl.ping_left() == 57
    assert ctrl.ping_right() == 120
    assert ctrl.ping_forward() == 8


def test_silent_board_raises(board):
    board(b"PONG\n")
    ctrl = LandController(simulate=False)
    ctrl.connect()

    with pytest.raises(ConnectionError):
        ctrl.forward(10)


def test_board_error_raises(board):
    board(b"PONG\n", b"ERROR:stalled\n")
    ctrl = LandController(simulate=False)
    ctrl.connect()

    with pytest.raises(RuntimeError):
        ctrl.left(90)


def test_command_before_connect_raises():
    with pytest.raises(ConnectionError):
        LandController(simulate=False).forward(10)


def test_observers_see_commands_and_readings():
    ctrl = LandController(simulate=True)
    seen = []
    ctrl.add_observer(lambda kind, value: seen.append((kind, value)))

    ctrl.connect()
    ctrl.forward(25)
    distance = ctrl.ping_right()

    assert distance == Config.SIMULATED_PING_DISTANCE
    assert seen == [("FORWARD", 25), ("PING_RIGHT", Config.SIMULATED_PING_DISTANCE)]


def test_failing_observer_does_not_stop_motion():
    ctrl = LandController(simulate=True)
    seen = []

    def broken(kind, value):
        raise ValueError("bad listener")

    ctrl.add_observer(broken)
    ctrl.add_observer(lambda kind, value: seen.append(kind))
    ctrl.right(90)

    assert seen == ["RIGHT"]


def test_delete_observers():
    ctrl = LandController(simulate=True)
    seen = []
    ctrl.add_observer(lambda kind, value: seen.append(kind))
    ctrl.delete_observers()
    ctrl.stop()
    assert seen == []


def test_reconnect_closes_previous_port(board):
    first = board(b"PONG\n")
    ctrl = LandController(simulate=False)
    ctrl.connect()

    second = board(b"PONG\n")
    ctrl.connect()

    assert first.closed
    assert not second.closed
    assert ctrl.serial_conn is second
