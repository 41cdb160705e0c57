"""Detectors that run locally without network access."""
