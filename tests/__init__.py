"""
Test suite for tablesmith.
"""
