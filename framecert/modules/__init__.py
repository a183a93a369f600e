"""Measurement modules."""
