"""Codeatlas - structural code intelligence for web-application source trees."""

__version__ = "0.4.0"
