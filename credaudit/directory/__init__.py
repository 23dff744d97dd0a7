"""Directory collaborators that supply AccountRecords to the scanner.

Public API:
    AccountDirectory : protocol an audit run consumes
    DumpDirectory    : accounts parsed from a DOMAIN\\user:rid:lm:nt::: dump
"""
from credaudit.directory.dump import DumpDirectory, parse_dump_line
from credaudit.directory.protocol import AccountDirectory

__all__ = ["AccountDirectory", "DumpDirectory", "parse_dump_line"]
