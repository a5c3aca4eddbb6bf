"""Database models and utilities."""

from .models import DeclinedTicketTable, TicketTable

__all__ = ["DeclinedTicketTable", "TicketTable"]
