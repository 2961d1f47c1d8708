"""Read-only data exports."""

from grocery_budget.exports.csv_export import CsvExport, CsvExporter, generate_filename
from grocery_budget.exports.pdf_export import PdfExport, PdfExporter, pdf_filename

__all__ = [
    "CsvExport",
    "CsvExporter",
    "generate_filename",
    "PdfExport",
    "PdfExporter",
    "pdf_filename",
]
