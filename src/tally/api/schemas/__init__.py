"""Pydantic schemas for the tally API."""
