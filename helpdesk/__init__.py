"""Helpdesk ticketing service for equipment repair requests."""
