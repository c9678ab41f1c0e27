"""gucli - shell commands behind menu entries, results as notifications."""

__version__ = "0.3.0"
