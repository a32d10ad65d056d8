"""Output module for Dossier Analyst: HTML console rendering."""

from dossier.output.html_report import (
    THREAT_LEVEL_DISPLAY,
    ConsoleRenderer,
    threat_level_display,
)

__all__ = ["ConsoleRenderer", "THREAT_LEVEL_DISPLAY", "threat_level_display"]
