"""Postwatch: post moderation and engagement core."""

__version__ = "0.1.0"
