"""Tandem CLI package."""
