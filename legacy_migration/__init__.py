"""
Legacy Store Migration

A one-time migration toolkit that moves user and lead records from the
legacy JSON flat-file store into MongoDB.

Supports:
- Timestamped backups of the legacy files before any write
- Idempotent reruns through natural-key deduplication
- Foreign key remapping from display names to MongoDB identifiers
- Verbatim import of pre-hashed credentials
- Per-record failure isolation with a final summary report
"""

__version__ = "0.1.0"
