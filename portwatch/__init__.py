"""Scan TCP ports on configured hosts, report changes and keep a history of them."""

__version__ = "0.1.0"