"""Cimaise image variant pipeline."""

__version__ = "1.0.0"
