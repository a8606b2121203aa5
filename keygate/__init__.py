"""keygate - time-limited access keys bound to one client identity."""

__version__ = "0.1.0"
