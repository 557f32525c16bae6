# app.py
from flask import Flask, jsonify, request
from flask_cors import CORS
import time
import threading
import logging

from brain import Brain, Direction
from config import Config
from flight_recorder import FlightRecorder
from land_controller import LandController

# Configure logging
logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(brain):
    """Build the dashboard API around an already constructed brain"""
    app = Flask(__name__)
    CORS(app)

    # Only one scripted run may drive the rover at a time
    busy_lock = threading.Lock()

    def run_in_background(name, script):
        if not busy_lock.acquire(blocking=False):
            return jsonify({'success': False, 'message': 'Rover is busy'}), 409

        def worker():
            try:
                script()
            except Exception as e:
                logger.error(f"{name} error: {e}")
            finally:
                busy_lock.release()

        thread = threading.Thread(target=worker, name=name)
        thread.daemon = True
        thread.start()
        return jsonify({'success': True, 'message': f'{name} started in background'})

    @app.route('/api/status')
    def get_status():
        """Get rover status"""
        try:
            recording = brain.recorder.get_recording()
            return jsonify({
                'success': True,
                'status': {
                    'connected': getattr(brain.controller, 'is_connected', False),
                    'recording': brain.is_recording,
                    'busy': busy_lock.locked(),
                    'listeners': len(brain.listeners),
                    'movements_recorded': len(recording),
                    'last_movement': recording[-1].flight_record_entry if recording else None
                },
                'timestamp': time.time()
            })
        except Exception as e:
            logger.error(f"Status error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/connect', methods=['POST'])
    def connect_rover():
        """Connect controller and telemetry listeners"""
        try:
            success = brain.connect()
            message = 'Connected' if success else 'Connection failed'
            return jsonify({'success': success, 'message': message})
        except Exception as e:
            logger.error(f"Connect error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/disconnect', methods=['POST'])
    def disconnect_rover():
        try:
            brain.disconnect()
            return jsonify({'success': True, 'message': 'Disconnected'})
        except Exception as e:
            logger.error(f"Disconnect error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/command', methods=['POST'])
    def send_command():
        """Run a single movement primitive"""
        try:
            data = request.json or {}
            command = data.get('command', '')
            value = int(data.get('value', 0))

            # One primitive at a time; a hold patches the action recorded before it
            if not busy_lock.acquire(blocking=False):
                return jsonify({'success': False, 'message': 'Rover is busy'}), 409

            try:
                if command == 'forward':
                    brain.forward(value)
                elif command == 'backward':
                    brain.backward(value)
                elif command == 'left':
                    brain.left(value)
                elif command == 'right':
                    brain.right(value)
                elif command == 'stay':
                    brain.stay()
                elif command == 'hold':
                    brain.hold(value)
                else:
                    return jsonify({'success': False, 'message': f'Unknown command: {command}'}), 400
            finally:
                busy_lock.release()

            return jsonify({'success': True, 'message': f'Command {command} executed'})
        except ValueError as e:
            logger.error(f"Command error: {e}")
            return jsonify({'success': False, 'error': str(e)}), 400
        except Exception as e:
            logger.error(f"Command error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/patrol', methods=['POST'])
    def patrol():
        """Start a patrol pattern"""
        try:
            data = request.json or {}
            pattern = data.get('pattern', 'patrol')

            if pattern == 'patrol':
                script = brain.patrol
            elif pattern == 'perimeter':
                script = brain.patrol_perimeter
            elif pattern == 'blanket':
                script = brain.patrol_blanket
            elif pattern == 'box':
                direction = Direction(data.get('direction', 'right'))
                size = int(data.get('size', 100))
                script = lambda: brain.do_box(direction, size)
            else:
                return jsonify({'success': False, 'message': f'Unknown pattern: {pattern}'}), 400

            return run_in_background(pattern, script)
        except Exception as e:
            logger.error(f"Patrol error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/home', methods=['POST'])
    def go_home():
        try:
            return run_in_background('home', brain.go_home)
        except Exception as e:
            logger.error(f"Home error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/replay', methods=['POST'])
    def replay():
        try:
            return run_in_background('replay', brain.replay)
        except Exception as e:
            logger.error(f"Replay error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    @app.route('/api/abort', methods=['POST'])
    def abort():
        """Cut short the hold in progress. An abort sent while a movement command
        is still running, before its hold starts, is dropped."""
        brain.abort()
        return jsonify({'success': True, 'message': 'Abort requested'})

    @app.route('/api/recording', methods=['GET'])
    def get_recording():
        """Get movement history"""
        try:
            recording = brain.recorder.get_recording()
            return jsonify({
                'success': True,
                'movements': [
                    {'action': m.action.value, 'speed': m.speed, 'duration': m.duration}
                    for m in recording[-50:]  # Last 50 movements
                ],
                'total_movements': len(recording)
            })
        except Exception as e:
            logger.error(f"Recording error: {e}")
            return jsonify({'success': False, 'error': str(e)})

    return app


if __name__ == '__main__':
    rover_brain = Brain(LandController(), FlightRecorder())
    app = create_app(rover_brain)

    print(f"""
    ============================================
    Rover Brain Dashboard Starting...
    ============================================
    URL: http://localhost:{Config.PORT}

    Configuration:
    - Simulate Arduino: {Config.SIMULATE_ARDUINO}
    - Arduino Port: {Config.ARDUINO_PORT}
    - Flight bus: {Config.FLIGHT_BUS_ENDPOINT}
    ============================================
    """)

    try:
        app.run(
            host=Config.HOST,
            port=Config.PORT,
            debug=Config.DEBUG,
            threaded=Config.THREADED,
            use_reloader=False  # Disable reloader to avoid threading issues
        )
    finally:
        rover_brain.disconnect()
