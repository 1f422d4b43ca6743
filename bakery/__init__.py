"""Weekend pickup ordering API for a small bakery."""

__version__ = "0.1.0"
