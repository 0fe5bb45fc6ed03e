"""Mobility Engine: per-group linear fits over COVID mobility data."""

__version__ = "1.0.0"
