"""Roundcube skin installer."""

__version__ = "0.1.0"
