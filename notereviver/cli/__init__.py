"""Command-line interface for notereviver."""
