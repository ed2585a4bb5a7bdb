"""Booking use cases: commands, queries and stats."""
