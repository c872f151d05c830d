"""Facility dataset access."""
