"""ordertrack: order change tracking and history."""

__version__ = "0.1.0"
