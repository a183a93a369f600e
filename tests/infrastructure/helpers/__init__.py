"""Test helpers for the framecert test suite.

Data Generators:
    frame_triples - Evenly spaced (desired, actual, ready) frame triples
    latency_output - Latency dump text for a refresh period and triples
    event_log - Lifecycle event log text
"""

from .generators import VSYNC_60HZ, event_log, frame_triples, latency_output

__all__ = ["VSYNC_60HZ", "event_log", "frame_triples", "latency_output"]
