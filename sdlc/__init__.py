"""sdlc - deterministic feature lifecycle engine."""

__version__ = "0.4.0"
