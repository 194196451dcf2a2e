"""Select tokens from a collection listing and buy them in one purchase."""

__version__ = "0.1.0"
