"""MineMuse: Bitcoin mining data aggregation and content generation pipeline."""

__version__ = "0.1.0"
