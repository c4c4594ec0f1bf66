"""
Device Reporter - MQTT Package

Publisher contract and its paho-mqtt implementation.
"""

from .publisher import MqttPublisher, Publisher, parse_server_address, transmit

__all__ = ["MqttPublisher", "Publisher", "parse_server_address", "transmit"]
