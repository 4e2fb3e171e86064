"""Utility modules for notereviver."""
