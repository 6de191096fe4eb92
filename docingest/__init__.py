"""Document ingestion and structured-extraction pipeline.

Loads business documents of many formats into clean text (with an OCR
fallback for scans), classifies them, and extracts validated invoice
and receipt records through a schema-constrained inference backend.
"""

__version__ = "1.0.0"
