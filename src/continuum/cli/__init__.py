"""Command line interface for Continuum."""
