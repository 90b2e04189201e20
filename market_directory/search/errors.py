from __future__ import annotations


class SearchError(Exception):
    """Base class for errors raised by the search engine."""


class InputError(SearchError):
    """Raised for a malformed postal code when strict postal mode is on."""

    def __init__(self, field: str, value: str, message: str) -> None:
        super().__init__(f"{field}={value!r}: {message}")
        self.field = field
        self.value = value


class StoreUnavailable(SearchError):
    """A store lookup could not be completed (timeout, connection, query error)."""

    def __init__(self, lookup: str, message: str = "store unavailable") -> None:
        super().__init__(f"{lookup}: {message}")
        self.lookup = lookup


class EngineUnavailable(SearchError):
    """Every issued lookup failed, so the engine could not search at all."""

    def __init__(self, failed_lookups: list[str]) -> None:
        super().__init__(
            "all lookups failed: " + ", ".join(failed_lookups)
        )
        self.failed_lookups = list(failed_lookups)
