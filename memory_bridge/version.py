"""Version information for the memory bridge."""

__version__ = "0.1.0"
