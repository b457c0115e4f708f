"""Command line interface for planvfs."""
