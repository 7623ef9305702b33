"""Ingest Crossplane composite resource definitions from many clusters into catalog entities."""

__version__ = "0.1.0"
