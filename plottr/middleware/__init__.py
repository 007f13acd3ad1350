"""Middleware for the geocoding API."""
