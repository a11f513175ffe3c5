"""Text renderings of a DiagnosticReport for downloading or pasting into a bug tracker."""

import json

from timeline_replay.core.report_schema import DiagnosticReport

SAFETY_HEADER = """\
# Timeline Replay - Diagnostic Report
# =====================================
# This report contains no locations, dates or personal data.
# It describes only the structure of the JSON file.
# It is safe to share with developers.
# =====================================

"""

CLIPBOARD_ERROR_SAMPLES = 5


def format_report_for_download(report: DiagnosticReport) -> str:
    return SAFETY_HEADER + report.model_dump_json(indent=2, exclude_none=True)


def format_report_for_clipboard(report: DiagnosticReport) -> str:
    """Shortened summary: found formats, error samples and recommendations, without the shape tree."""
    summary = {
        "version": report.version,
        "generated_at": report.generated_at,
        "stats": report.file_stats.model_dump(),
        "formats": {str(fmt): count for fmt, count in report.found_formats().items()},
        "errors": len(report.rejections),
        "error_summary": [
            rejection.model_dump(mode="json")
            for rejection in report.rejections[:CLIPBOARD_ERROR_SAMPLES]
        ],
        "recommendations": report.recommendations,
    }
    return (
        "Timeline Replay diagnostic report\n"
        "=====================================\n"
        "Contains no locations or personal data\n\n"
        f"{json.dumps(summary, indent=2)}"
    )
