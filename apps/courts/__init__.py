"""Courts app package.

Courts are maintained by administration and read by the booking engine:
pricing (``base_price`` x ``price_multiplier``) and the daily operating
hours that slots are generated from.
"""
