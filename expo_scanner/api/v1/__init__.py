"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- scanner: Scanner link validation

==============================================================================
"""

from . import health, scanner

__all__ = ["health", "scanner"]
