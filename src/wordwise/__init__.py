"""WordWise real-time writing assistance engine."""

__version__ = "0.1.0"
