"""
Document Upload Pipeline

Upload locally staged multi-page documents (page images plus optional PAGE-XML
transcripts) to a remote ingestion service, one page per request, with
retries, checksums, progress reporting and cancellation.
"""

__version__ = "0.1.0"
