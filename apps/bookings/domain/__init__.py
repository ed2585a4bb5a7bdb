"""Scheduling domain: calendar, slots, availability and the booking aggregate."""
