"""CSV export package."""

from household_ledger.export.csv_export import export_database, export_filename, export_to_csv

__all__ = ["export_database", "export_filename", "export_to_csv"]
