"""Antfarm - workflow step dispatch and dashboard daemon supervision."""

__version__ = "0.1.0"
