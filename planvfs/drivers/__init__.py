"""Concrete implementations of the engine's ports."""
