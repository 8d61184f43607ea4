"""Entity classification, extraction and sprite correlation for Peglin asset data."""

__version__ = "0.1.0"
