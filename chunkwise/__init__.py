"""Chunkwise: durable document ingestion for multi-tenant RAG datasets."""

__version__ = "0.1.0"
