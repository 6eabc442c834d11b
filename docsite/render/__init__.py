"""Output phase: the HTML site and the diagnostics report."""

from .html import INDEX_PAGE, SiteRenderer, output_paths, render_blocks
from .inline import render_inline
from .report import DiagnosticsReport, format_diagnostics

__all__ = [
    "DiagnosticsReport",
    "INDEX_PAGE",
    "SiteRenderer",
    "format_diagnostics",
    "output_paths",
    "render_blocks",
    "render_inline",
]
