"""Account classification.

Public API:
    ComplianceScanner   : classifies an account stream against a HashIndex
    LinkedIdentityProbe : bounded lookup of a primary account's linked identity
"""
from credaudit.scanner.engine import ComplianceScanner
from credaudit.scanner.linked import LinkedIdentityProbe, LinkedLookup

__all__ = ["ComplianceScanner", "LinkedIdentityProbe", "LinkedLookup"]
