"""Prompting, request validation and reply normalization."""
