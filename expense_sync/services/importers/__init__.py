"""Statement import package."""

from expense_sync.services.importers.csv_import import (
    CsvImportResult,
    CsvStatementImporter,
)

__all__ = ["CsvImportResult", "CsvStatementImporter"]
