"""Parsers for device command output."""

from .latency_parser import LatencyDump, parse_latency_output, parse_sample_line

__all__ = ["LatencyDump", "parse_latency_output", "parse_sample_line"]
