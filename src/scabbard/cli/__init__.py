"""Scabbard CLI for running pipeline files."""

from scabbard.cli.main import main

__all__ = ["main"]
