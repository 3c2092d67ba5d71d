"""Automated documentation translation with branch and pull request management."""

__version__ = "0.1.0"
