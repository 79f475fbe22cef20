"""CSV request ingestion into a normalised relational store."""

__version__ = "0.1.0"
