"""Utility functions for axiom."""
