"""Chat-driven command dispatcher: match, authorize, run, stream output back."""

__version__ = "0.1.0"
