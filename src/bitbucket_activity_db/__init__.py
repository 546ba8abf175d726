"""Bitbucket Activity DB - incremental mirror of Bitbucket commits and pull requests."""

__version__ = "0.1.0"
