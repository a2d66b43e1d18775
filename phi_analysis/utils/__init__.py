"""Utilities shared by the reconstruction pipeline."""
