# land_controller.py
import logging
import time

import serial

from config import Config

logger = logging.getLogger(__name__)


class LandController:
    """
    Serial link to the drive board. Every call blocks until the board reports
    the command complete; ping calls return the distance in cm.

    Observers are plain callables taking (kind, value). They are told about
    every command sent and every distance read.
    """

    def __init__(self, port=Config.ARDUINO_PORT, baud=Config.ARDUINO_BAUD,
                 simulate=Config.SIMULATE_ARDUINO):
        self.port = port
        self.baud = baud
        self.simulate = simulate
        self.serial_conn = None
        self.is_connected = False
        self._observers = []

    def connect(self):
        """Open the port and handshake with the board. Raises on failure."""
        if self.simulate:
            print("SIMULATION MODE: Arduino connection simulated")
            self.is_connected = True
            return

        # Only one open port per controller
        if self.serial_conn:
            self.serial_conn.close()
            self.serial_conn = None

        self.serial_conn = serial.Serial(
            port=self.port,
            baudrate=self.baud,
            timeout=Config.SERIAL_TIMEOUT
        )

        # Wait for Arduino to reset
        time.sleep(Config.ARDUINO_RESET_DELAY)

        self.serial_conn.write(b"PING\n")
        response = self.serial_conn.readline().decode().strip()
        if "PONG" not in response:
            self.serial_conn.close()
            self.serial_conn = None
            raise ConnectionError(f"No handshake from board on {self.port} (got {response!r})")

        print(f"Connected to Arduino on {self.port}")
        self.is_connected = True

    def disconnect(self):
        if self.serial_conn:
            self.serial_conn.close()
            self.serial_conn = None
        self.is_connected = False

    def add_observer(self, observer):
        self._observers.append(observer)

    def delete_observers(self):
        self._observers.clear()

    def _notify(self, kind, value):
        for observer in list(self._observers):
            try:
                observer(kind, value)
            except Exception as e:
                logger.error(f"Observer failed on {kind}: {e}")

    def _send_command(self, command, value=None):
        """Send a command and wait for the board's reply"""
        full_command = f"{command}:{value}" if value is not None else command

        if self.simulate:
            print(f"SIMULATED: {full_command}")
            return "DONE"

        if not self.is_connected or self.serial_conn is None:
            raise ConnectionError(f"Not connected, cannot send {full_command}")

        self.serial_conn.write(f"{full_command}\n".encode())
        response = self.serial_conn.readline().decode().strip()
        if not response:
            raise ConnectionError(f"No reply from board to {full_command}")
        if response.startswith("ERROR"):
            raise RuntimeError(f"Board rejected {full_command}: {response}")
        return response

    def _move(self, command, value):
        self._send_command(command, value)
        self._notify(command, value)

    def forward(self, distance):
        self._move("FORWARD", distance)

    def back(self, distance):
        self._move("BACKWARD", distance)

    def left(self, degrees):
        self._move("LEFT", degrees)

    def right(self, degrees):
        self._move("RIGHT", degrees)

    def stop(self):
        self._move("STOP", None)

    def _ping(self, side):
        if self.simulate:
            print(f"SIMULATED: DIST:{side}")
            distance = Config.SIMULATED_PING_DISTANCE
        else:
            # Reply looks like "DIST:57"
            response = self._send_command("DIST", side)
            try:
                distance = int(response.split(":")[-1])
            except ValueError:
                raise RuntimeError(f"Bad distance reply for {side}: {response!r}")

        self._notify(f"PING_{side}", distance)
        return distance

    def ping_left(self):
        return self._ping("LEFT")

    def ping_right(self):
        return self._ping("RIGHT")

    def ping_forward(self):
        return self._ping("FORWARD")
