"""Test infrastructure: device mocks and latency output generators."""
