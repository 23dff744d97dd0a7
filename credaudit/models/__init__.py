"""credaudit models package.

Defines the data contracts shared by the index, the scanner and the report
sinks:

  - account.py: AccountRecord, HashEntry, Classification, ClassificationResult,
                 ScanCounters, LoadStats, LoadSummary
"""
