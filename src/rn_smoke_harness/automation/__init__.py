"""UI automation server helpers."""
