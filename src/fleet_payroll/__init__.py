"""Monthly compensation engine for ground-transport drivers."""

__version__ = "0.1.0"
