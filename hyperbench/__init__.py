"""hyperbench: concurrent write-load benchmark harness for Hyperbase."""

__version__ = "0.1.0"
