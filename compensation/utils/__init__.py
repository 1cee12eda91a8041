"""
Utilities.

Exceptions, datetime helpers, locking and retry.
"""
