"""Scheduled maintenance and reporting tasks for a Scrypted installation."""

__version__ = "0.3.0"
