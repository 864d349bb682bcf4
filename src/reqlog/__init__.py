"""reqlog: capture request items into markdown request-log documents."""

__version__ = "0.1.0"
