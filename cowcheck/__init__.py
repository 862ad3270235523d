"""cowcheck — node-local health-check daemon."""

__version__ = "0.2.0"
