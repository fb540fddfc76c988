"""Round reporting utilities (standings export)."""

from .export import STANDINGS_HEADERS, export_standings_to_csv, standings_to_rows

__all__ = ["STANDINGS_HEADERS", "export_standings_to_csv", "standings_to_rows"]
