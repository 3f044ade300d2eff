"""Authoring, validation and preview of endpoint type form schemas."""

__version__ = "0.1.0"
