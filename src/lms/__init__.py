"""LMS admin API: account and qualification lifecycle engine."""

__version__ = "0.1.0"
