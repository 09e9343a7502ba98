"""Log export formatting and delivery."""

from .formatter import ExportOptions, ExportDocument, format_export, default_filename, write_export

__all__ = ['ExportOptions', 'ExportDocument', 'format_export', 'default_filename', 'write_export']
