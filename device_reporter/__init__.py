"""
Device Reporter

Host telemetry agent: periodically snapshots disks, CPUs and memory and
publishes the compressed report to an MQTT collector.
"""

__version__ = "1.0.0"
