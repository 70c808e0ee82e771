"""
Router initialization module.

Exports all API routers for the featuretree backend.
"""
from featuretree.server.routers import features, status, system

__all__ = [
    "features",
    "status",
    "system",
]
