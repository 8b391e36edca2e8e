"""Core app package.

Holds cross-cutting pieces used by the domain apps: the key/value
``SystemSetting`` table read by the booking engine and the DRF exception
handler that renders domain errors.
"""
