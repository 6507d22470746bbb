"""Shared builders for test data."""
