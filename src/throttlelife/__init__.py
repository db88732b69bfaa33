"""ThrottleLife route-incident engine."""

__version__ = "0.1.0"
