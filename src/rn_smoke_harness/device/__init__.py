"""Emulator and simulator management."""
