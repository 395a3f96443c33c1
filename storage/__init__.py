"""Persistent storage for Questex."""
