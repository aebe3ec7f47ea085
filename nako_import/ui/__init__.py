"""Console rendering for import failures."""

from .error_display import display_import_error
from .error_display import trace_table

__all__ = ["display_import_error", "trace_table"]
