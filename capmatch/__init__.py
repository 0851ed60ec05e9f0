"""
Top-level package for the cap catalog matcher.

This package loads a catalog snapshot exported by the product/pricing
service, ranks it against partial cap descriptions (panel count, bill
shape, profile, structure) and serves the result, with its full scoring
trail, through a small FastAPI app. There are no side-effects on import
and the match suite can be run as a script for ad-hoc debugging.
"""
