"""Command-line interface for DealScope."""
