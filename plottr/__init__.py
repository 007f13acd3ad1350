"""Plottr geocoding service."""
