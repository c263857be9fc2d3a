"""Ticketed event registration with gateway payment settlement for Django."""

__version__ = "0.1.0"
