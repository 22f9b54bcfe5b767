"""
Analysis Intake Module: Turn external analysis records into library tracks.

- Camelot key parsing from free-form key strings
- Batch ingestion, one record at a time with a fixed inter-item delay
- Per-item failures never abort a batch
"""

__all__ = ["key", "batch"]
