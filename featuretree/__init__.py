"""featuretree - prioritise product features by frequency and damage.

Packages:
    featuretree.tree     forest model, weights, structural edits, status sync
    featuretree.data     status database and workspace persistence
    featuretree.client   HTTP client for the status service
    featuretree.server   FastAPI status service and editor API
    featuretree.cli      command line entrypoint
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
