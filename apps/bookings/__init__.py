"""Bookings app package.

This app owns the booking ledger and the scheduling engine built on top
of it: slot generation from the provider calendar, availability with
capacity and buffer rules, and the reserve, reschedule and cancel
operations. Every write runs inside one database transaction guarded by
a per (provider, service, date) lock, so capacity is never exceeded.
"""
