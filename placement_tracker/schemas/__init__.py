"""
Schemas module - API contract (what clients send and receive).

All schemas live in schemas.py.
"""
