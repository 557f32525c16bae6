# brain.py
import logging
import threading
from enum import Enum

from config import Config
from flight_recorder import Action, FlightRecorder
from telemetry_listener import TelemetryListener

logger = logging.getLogger(__name__)


class Direction(Enum):
    LEFT = "left"
    RIGHT = "right"
    FORWARD = "forward"


class Brain:
    """
    Movement decisions for the rover.

    Owns the physical controller, the flight recorder and the telemetry
    listeners. Create one per process and pass it to whoever drives the rover.
    Every primitive returns the brain so calls can be chained:

        brain.forward(50).hold(2000).right(90).hold(500)
    """

    def __init__(self, controller, recorder, listener_endpoints=None,
                 listener_factory=TelemetryListener, recorder_factory=FlightRecorder):
        self.controller = controller
        self.recorder = recorder
        self.listener_endpoints = list(Config.LISTENER_ENDPOINTS
                                       if listener_endpoints is None else listener_endpoints)
        self.listener_factory = listener_factory
        self.recorder_factory = recorder_factory
        self.listeners = []
        self.is_connected = False
        self.is_recording = True
        self._recorder_closed = False
        self._abort_event = threading.Event()

    def connect(self):
        """
        Connect the controller and every telemetry listener. Does nothing
        when already connected. A recorder shut down by an earlier
        disconnect() is replaced, so each connection records a new flight.
        """
        if self.is_connected:
            return True

        try:
            self.controller.connect()
            for endpoint in self.listener_endpoints:
                listener = self.listener_factory(endpoint)
                self.listeners.append(listener)
                self.controller.add_observer(listener.connect())
        except Exception as e:
            print(f"Exception creating new rover connection: {e}")
            logger.error(f"Rover connection failed: {e}")
            self._release_listeners()
            self.controller.disconnect()
            return False

        if self._recorder_closed:
            self.recorder = self.recorder_factory()
            self._recorder_closed = False
        self.is_connected = True
        return True

    def _release_listeners(self):
        if self.listeners:
            for listener in self.listeners:
                listener.disconnect()
            # Listeners are off the bus, now drop the controller's references to them.
            self.controller.delete_observers()
            self.listeners.clear()

    def disconnect(self):
        self._release_listeners()
        self.controller.disconnect()
        if not self._recorder_closed:
            self.recorder.shutdown()
            self._recorder_closed = True
        self.is_connected = False

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _record(self, action, speed):
        if self.is_recording:
            self.recorder.record_action(action, speed)

    def do_for(self, ms):
        return self.hold(ms)

    def hold(self, ms):
        """
        Block for ms milliseconds, then credit that time to the last
        recorded movement. abort() ends the wait early.
        """
        if ms < 0:
            raise ValueError(f"Cannot hold for {ms} milliseconds")

        print(f"Brain.hold for {ms} milliseconds...")
        self._abort_event.clear()
        if self._abort_event.wait(ms / 1000):
            self._abort_event.clear()
            logger.error(f"Hold for {ms} ms interrupted")
            return self

        if self.is_recording and self.recorder.get_recording():
            self.recorder.record_duration(ms)
        return self

    def abort(self):
        """
        End the hold in progress. Each hold starts by clearing the abort,
        so an abort that lands while a movement command is still running
        (before its hold begins) has no effect.
        """
        self._abort_event.set()

    def stay(self, speed=Config.DEFAULT_SPEED):
        print("Brain.stay")
        self._record(Action.STAY, speed)
        self.controller.stop()
        return self

    def forward(self, distance, speed=Config.DEFAULT_SPEED):
        print(f"Brain.forward {distance}")
        self._record(Action.FORWARD, speed)
        self.controller.forward(distance)
        return self

    def backward(self, distance, speed=Config.DEFAULT_SPEED):
        print(f"Brain.backward {distance}")
        self._record(Action.BACKWARD, speed)
        self.controller.back(distance)
        return self

    def left(self, degrees, speed=Config.DEFAULT_SPEED):
        print(f"Turn left {degrees} degrees.")
        self._record(Action.LEFT, speed)
        self.controller.left(degrees)
        return self

    def right(self, degrees, speed=Config.DEFAULT_SPEED):
        print(f"Turn right {degrees} degrees.")
        self._record(Action.RIGHT, speed)
        self.controller.right(degrees)
        return self

    def turn(self, direction, degrees=Config.TURN_DEGREES):
        if direction == Direction.LEFT:
            return self.left(degrees)
        return self.right(degrees)

    # ------------------------------------------------------------------
    # Patrols
    # ------------------------------------------------------------------

    def patrol(self):
        """Short back-and-forth sweep, turning toward the nearer wall each time"""
        # Starting readings; they only go to the controller's observers
        self.controller.ping_left()
        self.controller.ping_right()
        self.controller.ping_forward()

        for _ in range(4):
            self.forward(Config.PATROL_STEP)

            dist_l = self.controller.ping_left()
            dist_r = self.controller.ping_right()
            self.controller.ping_forward()
            self.turn(Direction.LEFT if dist_l < dist_r else Direction.RIGHT, 180)

        return self

    def patrol_perimeter(self, stop_dist=Config.PERIMETER_STOP_DIST):
        """
        Trace the room's perimeter, keeping the nearer wall on the turning
        side, and come back to the starting spot and bearing.
        """
        dist_l = self.controller.ping_left()
        dist_r = self.controller.ping_right()
        dist_f = self.controller.ping_forward()

        # Closer side wall decides the turn direction
        turn_dir = Direction.LEFT if dist_l < dist_r else Direction.RIGHT
        # A wall straight ahead that is closest of all is approached head on
        start_dir = Direction.FORWARD if dist_f < min(dist_l, dist_r) else turn_dir

        if start_dir != Direction.FORWARD:
            self.turn(turn_dir)

        dist_from_wall = self.ping_move(stop_dist)
        self.turn(turn_dir)
        dist_to_corner = self.ping_move(stop_dist)
        self.turn(turn_dir)
        self.ping_move(stop_dist)
        self.turn(turn_dir)
        self.ping_move(stop_dist)
        self.turn(turn_dir)
        self.ping_move(stop_dist)
        self.turn(turn_dir)
        self.ping_move(dist_to_corner)
        self.turn(turn_dir)
        self.ping_move(dist_from_wall)
        self.turn(turn_dir)
        if start_dir == Direction.FORWARD:
            self.turn(turn_dir)

        return self

    def patrol_blanket(self, stop_dist=Config.BLANKET_STOP_DIST):
        """Cover the area by always heading for the most open direction"""
        for _ in range(5):
            dist_l = self.controller.ping_left()
            dist_r = self.controller.ping_right()
            dist_f = self.controller.ping_forward()

            direction = Direction.LEFT if dist_l > dist_r else Direction.RIGHT

            if max(dist_f, dist_l, dist_r) < stop_dist:
                # Boxed into a corner: about face and look again
                self.turn(direction, 180)
            else:
                if dist_f > max(dist_l, dist_r):
                    direction = Direction.FORWARD

                if direction != Direction.FORWARD:
                    self.turn(direction)
                self.ping_move(stop_dist)

        return self

    def ping_move(self, stop_distance):
        """Drive up to stop_distance cm short of the wall ahead; returns the wall's original distance"""
        distance = self.controller.ping_forward()
        self.forward(max(distance - stop_distance, 0))
        return distance

    def do_box(self, direction, cm_max_distance):
        half = cm_max_distance // 2

        self.forward(half)              # N center of box
        self.turn(direction)
        self.forward(half)              # NW corner
        self.turn(direction)
        self.forward(cm_max_distance)   # SW corner
        self.turn(direction)
        self.forward(cm_max_distance)   # SE corner
        self.turn(direction)
        self.forward(cm_max_distance)   # NE corner
        self.turn(direction)
        self.forward(half)              # back to N center
        self.turn(direction)
        self.forward(half)              # back to box center
        self.turn(direction)
        self.turn(direction)

        return self

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def go_home(self):
        self.process_recorded_movements(self.recorder.home())
        return self

    def replay(self):
        self.process_recorded_movements(self.recorder.get_recording())
        return self

    def process_recorded_movements(self, moves):
        """
        Play back recorded movements without recording them again. Each
        movement is held for its recorded duration.
        """
        self.is_recording = False
        try:
            # TODO: replay recorded distances/degrees once the recorder stores them;
            # for now every move runs with a zero magnitude.
            for movement in moves:
                if movement.action == Action.FORWARD:
                    self.forward(0)
                elif movement.action == Action.BACKWARD:
                    self.backward(0)
                elif movement.action == Action.RIGHT:
                    self.right(0)
                elif movement.action == Action.LEFT:
                    self.left(0)
                elif movement.action == Action.STAY:
                    self.stay()
                self.hold(movement.duration)
                print(movement)
        finally:
            self.is_recording = True
