"""Sheets infrastructure module - values API client for the order sheet."""

from .client import GoogleSheetsClient, a1_range

__all__ = ["GoogleSheetsClient", "a1_range"]
