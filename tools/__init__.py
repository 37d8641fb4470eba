"""Upstream clients and helpers."""
