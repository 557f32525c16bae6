# main.py
import logging
import sys

from brain import Brain, Direction
from config import Config
from flight_recorder import FlightRecorder, load_flight
from land_controller import LandController

HELP = """Commands: forward N, backward N, left N, right N, stay, hold MS
Patrols: patrol, perimeter, blanket, box N [left|right]
Flight: home, replay, replay-file PATH, recording, exit"""


def handle_command(brain, command):
    """Run one console command. Returns False when the console should exit."""
    parts = command.split()
    if not parts:
        return True

    name, args = parts[0].lower(), parts[1:]

    if name == "exit":
        return False
    elif name in ("forward", "backward", "left", "right", "hold") and args:
        getattr(brain, name)(int(args[0]))
    elif name == "stay":
        brain.stay()
    elif name == "patrol":
        brain.patrol()
    elif name == "perimeter":
        brain.patrol_perimeter()
    elif name == "blanket":
        brain.patrol_blanket()
    elif name == "box" and args:
        direction = Direction(args[1].lower()) if len(args) > 1 else Direction.RIGHT
        brain.do_box(direction, int(args[0]))
    elif name == "home":
        brain.go_home()
    elif name == "replay":
        brain.replay()
    elif name == "replay-file" and args:
        brain.process_recorded_movements(load_flight(args[0]))
    elif name == "recording":
        for movement in brain.recorder.get_recording():
            print(movement)
    else:
        print("Unknown command")
        print(HELP)
    return True


def main():
    logging.basicConfig(level=Config.LOG_LEVEL)

    brain = Brain(LandController(), FlightRecorder())

    if not brain.connect():
        print("Failed to connect to the rover. Please check:")
        print("1. Arduino is connected via USB")
        print("2. Correct port in config.py")
        print("3. Telemetry bus is running")
        brain.recorder.shutdown()
        sys.exit(1)

    try:
        print("Rover Brain Ready")
        print(HELP)

        while True:
            command = input("Enter command: ").strip()
            try:
                if not handle_command(brain, command):
                    break
            except ValueError as e:
                print(f"Bad command: {e}")

    except KeyboardInterrupt:
        print("\nInterrupted by user")
    finally:
        brain.disconnect()
        print("System shutdown complete")


if __name__ == "__main__":
    main()
