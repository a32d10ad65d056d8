"""CLI module for Dossier Analyst."""

from dossier.cli.main import cli

__all__ = ["cli"]
