"""
Output rendering for advisory reports.

Formats:
- text: plain terminal output
- json: deterministic, machine-readable
- markdown: PR comments, issues, docs
"""

from indexsense.output.renderers import (
    OutputFormat,
    render,
    render_json,
    render_markdown,
    render_text,
)
from indexsense.output.schema import (
    SCHEMA_VERSION,
    AdvisorReportDocument,
    get_json_schema,
)

__all__ = [
    "AdvisorReportDocument",
    "OutputFormat",
    "SCHEMA_VERSION",
    "get_json_schema",
    "render",
    "render_json",
    "render_markdown",
    "render_text",
]
