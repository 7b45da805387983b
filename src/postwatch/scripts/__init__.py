"""Operational scripts for Postwatch."""
