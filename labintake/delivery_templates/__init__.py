"""Saved ship-from addresses per owner context."""
