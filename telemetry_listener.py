# telemetry_listener.py
import logging

import zmq

from config import Config

logger = logging.getLogger(__name__)


class TelemetryListener:
    """Forwards controller readings to one telemetry bus endpoint"""

    def __init__(self, endpoint, topic=Config.LISTENER_TOPIC, context=None):
        self.endpoint = endpoint
        self.topic = topic
        self.context = context
        self.socket = None

    def connect(self):
        """Open the publisher and return the observer to register with the controller"""
        self.socket = (self.context or zmq.Context.instance()).socket(zmq.PUB)
        try:
            self.socket.connect(self.endpoint)
        except zmq.ZMQError:
            self.socket.close(linger=0)
            self.socket = None
            raise
        print(f"Telemetry listener connected to {self.endpoint}")
        return self.on_reading

    def on_reading(self, kind, value):
        if self.socket is None:
            return
        topic = f"{self.topic}/{kind.lower()}"
        payload = "" if value is None else str(value)
        try:
            self.socket.send_multipart([topic.encode(), payload.encode()], flags=zmq.NOBLOCK)
        except zmq.ZMQError as e:
            logger.error(f"Telemetry publish to {self.endpoint} failed: {e}")

    def disconnect(self):
        if self.socket is not None:
            self.socket.close(linger=0)
            self.socket = None
