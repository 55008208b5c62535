"""Chaos Organizer client-side message sync and content protection engine."""

__version__ = "0.1.0"
