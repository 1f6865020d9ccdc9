"""Investor document ingestion: sources in, structured profile and evidence out."""

__version__ = "0.1.0"
