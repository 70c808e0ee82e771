"""Shared configuration for featuretree."""
