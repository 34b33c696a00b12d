"""
PlanetFeed Utilities
===================

Shared exceptions, logging configuration, and URL validators.
"""
