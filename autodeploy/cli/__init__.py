"""Command line interface for autodeploy."""

from .main import main

__all__ = ["main"]
