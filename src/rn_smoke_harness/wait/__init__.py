"""Polling, pattern and retry primitives."""
