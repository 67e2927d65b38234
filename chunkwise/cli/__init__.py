"""Command-line tools for Chunkwise.

- ``python -m chunkwise.cli`` -- ingest, reprocess and inspect documents
  outside the web server.
"""
