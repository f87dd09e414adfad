"""Smoke test harness helpers for React Native projects."""

__version__ = "0.1.0"
