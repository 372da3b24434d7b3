# src/board_relay/errors.py

from __future__ import annotations

from collections.abc import Iterable


class BoardRelayError(Exception):
    """Base class for errors raised by board_relay."""


class ConfigurationError(BoardRelayError):
    """Settings or the sources file are unusable. Fatal at startup."""


class SourceLoadError(ConfigurationError):
    """
    A source entry could not be turned into a handler.

    missing_config / missing_columns list exactly what the entry lacks, so callers
    (and the CLI) can report it without parsing the message.
    """

    def __init__(
            self,
            message: str,
            source_type: str | None = None,
            *,
            missing_config: Iterable[str] = (),
            missing_columns: Iterable[str] = (),
    ) -> None:
        super().__init__(f"Error when reading configuration for source {source_type}: {message}")
        self.source_type = source_type
        self.missing_config = tuple(missing_config)
        self.missing_columns = tuple(missing_columns)
