"""Extent report generation."""
