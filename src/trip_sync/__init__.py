"""Merge two travellers' copies of a trip plan (itinerary, expenses, to-dos,
saved spots and fuel stations) with per-record last-write-wins."""

__version__ = "1.0.0"
