"""Command-line client for the fatcat bibliographic catalog."""

__version__ = "0.3.0"
