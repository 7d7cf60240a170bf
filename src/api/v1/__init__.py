"""
API v1 package.

Contains versioned API routes for account creation and email confirmation.
"""

from src.api.v1.routes import router

__all__ = ["router"]
