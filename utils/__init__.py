"""
Shared helpers for text and number handling.
"""
