"""Bookings app package.

This app encapsulates the court booking engine: slot generation,
availability, the atomic check-and-insert that prevents double booking,
the booking/payment state machine and the cancellation refund policy.
Overlaps are rejected inside a locked transaction and, on PostgreSQL,
by an exclusion constraint as well.
"""
