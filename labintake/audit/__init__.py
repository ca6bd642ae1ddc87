"""Audit trail for submission lifecycle events."""
