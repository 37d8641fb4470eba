"""Wardrobe app configuration, logging and wiring."""
