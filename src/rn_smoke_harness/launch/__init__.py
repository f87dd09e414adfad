"""Debug launch configuration handling."""
