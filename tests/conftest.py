from __future__ import annotations

from typing import Dict, List, Union

import pytest
import zmq

from brain import Brain
from flight_recorder import FlightRecorder


Reading = Union[int, List[int]]


class FakeController:
    """
    Stands in for LandController. Each side's reading is either a fixed
    distance or a list consumed front first (the last value repeats).
    """

    def __init__(self, left: Reading = 100, right: Reading = 100, forward: Reading = 100):
        self.readings: Dict[str, Reading] = {"left": left, "right": right, "forward": forward}
        self.calls: list = []
        self.observers: list = []
        self.is_connected = False
        self.fail_connect = False

    def _read(self, side):
        value = self.readings[side]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        self.calls.append((f"ping_{side}",))
        return value

    def connect(self):
        self.calls.append(("connect",))
        if self.fail_connect:
            raise ConnectionError("board unreachable")
        self.is_connected = True

    def disconnect(self):
        self.calls.append(("disconnect",))
        self.is_connected = False

    def forward(self, distance):
        self.calls.append(("forward", distance))

    def back(self, distance):
        self.calls.append(("back", distance))

    def left(self, degrees):
        self.calls.append(("left", degrees))

    def right(self, degrees):
        self.calls.append(("right", degrees))

    def stop(self):
        self.calls.append(("stop",))

    def ping_left(self):
        return self._read("left")

    def ping_right(self):
        return self._read("right")

    def ping_forward(self):
        return self._read("forward")

    def add_observer(self, observer):
        self.calls.append(("add_observer",))
        self.observers.append(observer)

    def delete_observers(self):
        self.calls.append(("delete_observers",))
        self.observers.clear()

    # helpers for assertions
    def moves(self):
        return [c for c in self.calls if c[0] in ("forward", "back")]

    def turns(self):
        return [c for c in self.calls if c[0] in ("left", "right")]

    def count(self, name):
        return sum(1 for c in self.calls if c[0] == name)


class FakeSocket:
    def __init__(self, fail_send=False, fail_connect=False):
        self.fail_send = fail_send
        self.fail_connect = fail_connect
        self.endpoints: list = []
        self.sent: list = []
        self.closed = False

    def connect(self, endpoint):
        if self.fail_connect:
            raise zmq.ZMQError(zmq.EINVAL)
        self.endpoints.append(endpoint)

    def send_multipart(self, frames, flags=0):
        if self.fail_send:
            raise zmq.ZMQError(zmq.EAGAIN)
        self.sent.append(frames)

    def close(self, linger=None):
        self.closed = True


class FakeContext:
    def __init__(self, **socket_kwargs):
        self.socket_kwargs = socket_kwargs
        self.sockets: list = []

    def socket(self, kind):
        sock = FakeSocket(**self.socket_kwargs)
        self.sockets.append(sock)
        return sock


class FakeListener:
    instances: list = []

    def __init__(self, endpoint, fail=False):
        self.endpoint = endpoint
        self.fail = fail
        self.connected = False
        self.disconnected = False
        FakeListener.instances.append(self)

    def connect(self):
        if self.fail:
            raise ConnectionError(f"cannot reach {self.endpoint}")
        self.connected = True
        return self.on_reading

    def on_reading(self, kind, value):
        pass

    def disconnect(self):
        self.disconnected = True


@pytest.fixture
def controller():
    return FakeController()


@pytest.fixture
def recorder(tmp_path):
    rec = FlightRecorder(log_dir=str(tmp_path), endpoint=None)
    yield rec
    rec.shutdown()


@pytest.fixture
def make_brain(recorder, tmp_path):
    FakeListener.instances = []

    def next_recorder():
        return FlightRecorder(log_dir=str(tmp_path), endpoint=None)

    def _make(ctrl=None, endpoints=(), listener_factory=FakeListener):
        return Brain(ctrl or FakeController(), recorder,
                     listener_endpoints=list(endpoints),
                     listener_factory=listener_factory,
                     recorder_factory=next_recorder)

    return _make
