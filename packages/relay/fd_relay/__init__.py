"""FableDrop spreadsheet relay: a same-origin pass-through to the Apps Script endpoint."""

__version__ = "0.1.0"
