"""Core parsing, staging and rebuilding for notereviver."""
