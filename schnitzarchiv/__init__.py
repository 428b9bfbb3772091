"""Schnitzarchiv - curated directory of woodcarving articles."""

__version__ = "1.0.0"
