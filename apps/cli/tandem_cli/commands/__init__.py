"""Tandem CLI commands."""
