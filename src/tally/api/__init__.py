"""
REST transport for tally.

Usage::

    uvicorn tally.api.app:create_app --factory
"""

from tally.api.app import create_app

__all__ = ["create_app"]
