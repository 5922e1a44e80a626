"""Command line interface (``python -m po_ingest.cli``)."""
