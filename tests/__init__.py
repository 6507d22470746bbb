"""Continuum test suite."""
