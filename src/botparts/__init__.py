"""Component cost tracking for combat-robot builds and competition events."""

__version__ = "0.1.0"
