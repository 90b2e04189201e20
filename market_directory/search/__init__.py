"""
Regional discovery & ranking engine.

Responsibilities:
- Normalize raw search input (free text, city, postal code) into a search intent.
- Run the locality lookups against the market/offer store concurrently.
- Partition candidates into mutually exclusive, priority-ordered tiers.
- Rank every tier and fold the tiers into the response shape.
"""
