"""Stock Watch: product availability and price checker."""

__version__ = "1.0.0"
