"""Reporting collaborators for audit results.

Public API:
    ReportSink         : protocol every sink satisfies
    ReportOptions      : verbose / expose_cleartext / export_records flags
    FindingRecord      : structured export row for one weak account
    create_report_sink : builds the configured sink stack for a run
"""
from credaudit.report.factory import CompositeReportSink, create_report_sink
from credaudit.report.models import FindingRecord, ReportOptions
from credaudit.report.protocol import NullReportSink, ReportSink

__all__ = [
    "CompositeReportSink",
    "FindingRecord",
    "NullReportSink",
    "ReportOptions",
    "ReportSink",
    "create_report_sink",
]
