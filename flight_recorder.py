# flight_recorder.py
import os
import logging
import threading
from dataclasses import dataclass
from enum import Enum

import zmq

from config import Config

logger = logging.getLogger(__name__)


class Action(Enum):
    # UP, DOWN, TAKEOFF, LAND and LIGHTS are never emitted by a ground vehicle
    # but stay in the enum so flight logs read the same for aerial variants.
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    UP = "UP"
    DOWN = "DOWN"
    STAY = "STAY"
    TAKEOFF = "TAKEOFF"
    LAND = "LAND"
    LIGHTS = "LIGHTS"


@dataclass
class Movement:
    """One executed command: action, speed and how long it ran (ms)"""
    action: Action
    speed: int = Config.DEFAULT_SPEED
    duration: int = 0

    @property
    def flight_record_entry(self):
        return "{" + f"{self.action.value},{self.speed},{self.duration}" + "}"

    @classmethod
    def from_flight_record_entry(cls, entry):
        """Parse a `{ACTION,speed,duration}` log line"""
        text = entry.strip()
        if not (text.startswith("{") and text.endswith("}")):
            raise ValueError(f"Not a flight record entry: {entry!r}")

        fields = text[1:-1].split(",")
        if len(fields) != 3:
            raise ValueError(f"Expected 3 fields in flight record entry: {entry!r}")

        action, speed, duration = fields
        try:
            return cls(Action[action], int(speed), int(duration))
        except KeyError:
            raise ValueError(f"Unknown action in flight record entry: {entry!r}")

    def __str__(self):
        return (f"Movement\tAction({self.action.value})"
                f"\tSpeed({self.speed})\tDuration({self.duration})")


def load_flight(path):
    """Read a persisted flight log back into Movements"""
    with open(path, 'r') as f:
        return [Movement.from_flight_record_entry(line) for line in f if line.strip()]


def _distance(movement):
    return movement.speed * movement.duration // 100


class FlightRecorder:
    """
    Owns the recording of one flight. Every recorded action is appended to the
    in-progress log and published on the flight bus; shutdown() writes the
    complete sequence to the last-flight log.

    Only the most recent movement may still have its duration patched, and only
    through record_duration().
    """

    def __init__(self, log_dir=Config.LOG_DIR, endpoint=Config.FLIGHT_BUS_ENDPOINT,
                 context=None):
        self.log_dir = log_dir
        self.topic = f"{Config.TELEMETRY_TOPIC}/movement"
        self._recording = []
        self._lock = threading.Lock()

        self.flight_in_progress = self._open_log(Config.IN_PROGRESS_LOG)

        self.client = None
        if endpoint:
            try:
                self.client = (context or zmq.Context.instance()).socket(zmq.PUB)
                self.client.connect(endpoint)
            except zmq.ZMQError as e:
                logger.error(f"Flight recorder could not reach {endpoint}: {e}")
                self.client = None

    def _open_log(self, file_name):
        path = os.path.join(self.log_dir, file_name)
        try:
            return open(path, 'w', buffering=1)
        except OSError as e:
            logger.error(f"Unable to open flight log {path}: {e}")
            return None

    def record_action(self, action, speed=Config.DEFAULT_SPEED):
        movement = Movement(action, speed, 0)
        with self._lock:
            self._recording.append(movement)
            if self.flight_in_progress is not None:
                self.flight_in_progress.write(movement.flight_record_entry + "\n")
        self.publish(movement)
        return movement

    def record_duration(self, duration):
        """Attach a duration to the most recently recorded movement"""
        with self._lock:
            if not self._recording:
                raise IndexError("No recorded movement to attach a duration to")
            self._recording[-1].duration = duration

    def get_recording(self):
        with self._lock:
            return tuple(self._recording)

    def home(self):
        """
        Build the movements that undo this flight's net displacement.

        x is forward/backward, y is right/left, z is up/down. A z correction is
        only added when the flight actually changed altitude.
        """
        x_delta = y_delta = z_delta = 0

        for movement in self.get_recording():
            if movement.action == Action.FORWARD:
                x_delta += _distance(movement)
            elif movement.action == Action.BACKWARD:
                x_delta -= _distance(movement)
            elif movement.action == Action.RIGHT:
                y_delta += _distance(movement)
            elif movement.action == Action.LEFT:
                y_delta -= _distance(movement)
            elif movement.action == Action.UP:
                z_delta += _distance(movement)
            elif movement.action == Action.DOWN:
                z_delta -= _distance(movement)
            # No measured adjustments for takeoff, stay, land, or lights.

        home_recording = [
            Movement(Action.FORWARD if x_delta < 0 else Action.BACKWARD,
                     Config.DEFAULT_SPEED, self._home_duration(x_delta)),
            Movement(Action.RIGHT if y_delta < 0 else Action.LEFT,
                     Config.DEFAULT_SPEED, self._home_duration(y_delta)),
        ]
        if z_delta != 0:
            home_recording.append(
                Movement(Action.UP if z_delta < 0 else Action.DOWN,
                         Config.DEFAULT_SPEED, self._home_duration(z_delta)))

        return home_recording

    @staticmethod
    def _home_duration(delta):
        return abs(delta) * 100 // Config.DEFAULT_SPEED

    def publish(self, movement):
        if self.client is None:
            return
        payload = f"{movement.action.value},{movement.speed}".encode()
        try:
            self.client.send_multipart([self.topic.encode(), payload], flags=zmq.NOBLOCK)
        except zmq.ZMQError as e:
            logger.error(f"Publish of {movement.action.value} failed: {e}")

    def shutdown(self):
        if self.flight_in_progress is not None:
            self.flight_in_progress.close()
            self.flight_in_progress = None

        if self.client is not None:
            try:
                self.client.close(linger=0)
            except zmq.ZMQError as e:
                logger.error(f"Error closing flight bus connection: {e}")
            self.client = None

        flight_complete = self._open_log(Config.LAST_FLIGHT_LOG)
        if flight_complete is None:
            return
        with flight_complete:
            for movement in self.get_recording():
                flight_complete.write(movement.flight_record_entry + "\n")
