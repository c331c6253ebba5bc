"""
siemship: batching and upload pipeline for SIEM log ingestion.

Takes structured log records, routes them by log type, namespace and
ingestion labels, packs them into size-bounded upload requests and ships
them to the ingestion API over gRPC or HTTPS.
"""

__version__ = "0.1.0"
