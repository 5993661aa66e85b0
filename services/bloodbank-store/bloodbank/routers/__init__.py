"""
API routers for the Blood Bank Store Service.
"""

from . import health

__all__ = ["health"]
