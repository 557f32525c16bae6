# config.py

class Config:
    # Arduino Serial Configuration
    ARDUINO_PORT = '/dev/ttyUSB0'  # Change to your port (e.g., 'COM11' on Windows)
    ARDUINO_BAUD = 9600
    # Link-health bound on waiting for a command acknowledgement. A board that
    # stays silent this long is treated as lost. Holds are never bounded by it.
    SERIAL_TIMEOUT = 30
    ARDUINO_RESET_DELAY = 2  # board resets when the port opens

    # Simulated mode for testing (if no arduino available)
    SIMULATE_ARDUINO = False
    SIMULATED_PING_DISTANCE = 100  # cm

    # Movement Parameters
    DEFAULT_SPEED = 20
    TURN_DEGREES = 90
    PATROL_STEP = 20  # cm
    PERIMETER_STOP_DIST = 40  # cm
    BLANKET_STOP_DIST = 50  # cm

    # Telemetry Configuration
    TELEMETRY_TOPIC = 'roverflight'
    FLIGHT_BUS_ENDPOINT = 'tcp://127.0.0.1:5555'
    LISTENER_TOPIC = 'roverland'
    LISTENER_ENDPOINTS = [
        'tcp://127.0.0.1:5555',
    ]

    # Flight Recorder Files
    LOG_DIR = '.'
    IN_PROGRESS_LOG = 'InProgress.afr'
    LAST_FLIGHT_LOG = 'LastFlight.afr'

    # Web Server Configuration
    HOST = '0.0.0.0'
    PORT = 5000
    DEBUG = True
    THREADED = True

    LOG_LEVEL = 'INFO'
