"""Shared helpers for nako_import."""
