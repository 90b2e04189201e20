"""
Search analytics.

Responsibilities:
- Record search and suggestion events in process memory.
- Summarise them for the admin analytics endpoint.
"""
