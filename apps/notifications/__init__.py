"""Notifications app package.

Forwards booking state changes to an ``EventNotifier`` sink after the
writing transaction commits. Delivery to end users (email, websockets,
push) is the sink's business, not the booking engine's.
"""
