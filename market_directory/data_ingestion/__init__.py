"""
Data ingestion package for the market directory.

Responsibility:
- Read raw market and offer exports from the relational store.
- Normalize them into the canonical Market/Offer columns.
- Persist cleaned CSVs that the in-process search store loads.
"""
