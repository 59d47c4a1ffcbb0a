"""Watch directories and run shell commands when file-system events match JSON rules."""

__version__ = "0.1.0"