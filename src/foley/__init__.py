"""Foley - automated sound-effect production for silent video."""

__version__ = "0.1.0"
