"""Decline log storage and reporting."""
