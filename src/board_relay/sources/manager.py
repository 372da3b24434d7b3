# src/board_relay/sources/manager.py

from __future__ import annotations

"""
Source registry and manager.

SourceRegistry maps a type name to its SourceDescriptor. It is an ordinary object
populated at startup (default_registry()) and handed to the manager, so tests can
pass their own.

SourceManager validates each configured entry, builds the handler and collects the
columns handlers claim exclusively. The first invalid entry aborts construction;
handlers built from earlier entries are not rolled back.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..core.ports import AccountManager, Board, Column, Repository
from ..errors import SourceLoadError
from .base import Source, SourceConfig, SourceDescriptor
from .discourse import DiscourseSource
from .issues import IssuesSource
from .publish import PublishSource

logger = logging.getLogger(__name__)

# Names that would resolve to something in this package but are not sources.
NOT_SOURCES: frozenset[str] = frozenset({"manager", "source"})


def missing_keys(required: Iterable[str], config: Mapping[str, Any]) -> list[str]:
    """Required keys not present in config, in a stable order."""
    return sorted(k for k in required if k not in config)


class SourceRegistry:
    def __init__(self, descriptors: Iterable[SourceDescriptor] = ()) -> None:
        self._descriptors: dict[str, SourceDescriptor] = {}
        for d in descriptors:
            self.register(d)

    def register(self, descriptor: SourceDescriptor) -> None:
        key = descriptor.type
        if key in NOT_SOURCES:
            raise ValueError(f"{key!r} is reserved and cannot be registered as a source type")
        if key in self._descriptors:
            raise ValueError(f"Source type {key!r} is already registered")
        self._descriptors[key] = descriptor

    def resolve(self, source_type: str) -> SourceDescriptor:
        if source_type in NOT_SOURCES:
            raise SourceLoadError("It is not a source.", source_type)
        try:
            return self._descriptors[source_type]
        except KeyError:
            raise SourceLoadError("Unknown source type.", source_type) from None

    def types(self) -> list[str]:
        return list(self._descriptors)

    def __contains__(self, source_type: object) -> bool:
        return source_type in self._descriptors

    def validate(self, entry: Mapping[str, Any]) -> SourceDescriptor:
        """
        Check one sources-file entry against its type's declaration.

        Config keys are checked first; column roles only once every required key is
        present. Raises SourceLoadError naming what is missing.
        """
        source_type = str(entry.get("type", ""))
        descriptor = self.resolve(source_type)

        missing_config = missing_keys(descriptor.required_config, entry)
        if missing_config:
            raise SourceLoadError(
                f"Missing the following config keys: {','.join(missing_config)}",
                source_type,
                missing_config=missing_config,
            )

        columns = entry.get("columns")
        if not isinstance(columns, Mapping):
            columns = {}
        missing_columns = missing_keys(descriptor.required_columns, columns)
        if missing_columns:
            raise SourceLoadError(
                f"Missing column names: {','.join(missing_columns)}",
                source_type,
                missing_columns=missing_columns,
            )
        return descriptor


def default_registry() -> SourceRegistry:
    """Registry with every source type implemented in this package."""
    return SourceRegistry(
        [
            SourceDescriptor.for_class("issues", IssuesSource),
            SourceDescriptor.for_class("publish", PublishSource),
            SourceDescriptor.for_class("discourse", DiscourseSource),
        ]
    )


class SourceManager:
    def __init__(
            self,
            config: Mapping[str, Any],
            repo: Repository,
            account_manager: AccountManager,
            board: Board,
            *,
            registry: SourceRegistry | None = None,
    ) -> None:
        self.sources: list[Source] = []
        self.managed_columns: set[str] = set()

        self._config = config
        self._repo = repo
        self._account_manager = account_manager
        self._board = board
        self._registry = registry if registry is not None else default_registry()

        entries = config.get("sources") or []
        for entry in entries:
            descriptor = self._registry.validate(entry)
            source_config = SourceConfig.from_mapping(entry)
            source = descriptor.factory(
                self._repo,
                self._account_manager,
                self._board,
                source_config,
                self.get_managed_columns,
            )
            self.sources.append(source)
            for role in descriptor.managed_columns:
                name = source_config.columns.get(role)
                if name is None:
                    continue
                if name in self.managed_columns:
                    # Not enforced: both sources keep running.
                    logger.warning("Column %r is claimed by more than one source (type=%s)", name, descriptor.type)
                self.managed_columns.add(name)
            logger.info("Loaded source type=%s columns=%s", descriptor.type, dict(source_config.columns))

    @property
    def registry(self) -> SourceRegistry:
        return self._registry

    async def get_managed_columns(self) -> Sequence[Column]:
        """Managed column names resolved to live Column objects."""
        columns = await self._board.get_columns()
        column_ids = await self._board.get_column_ids()
        out: list[Column] = []
        for name in sorted(self.managed_columns):
            column = columns.get(column_ids.get(name))
            if column is None:
                logger.warning("Managed column %r is not on the board", name)
                continue
            out.append(column)
        return out

    async def start(self) -> None:
        for source in self.sources:
            try:
                await source.start()
            except Exception:
                logger.exception("Starting %s failed", type(source).__name__)

    async def run_cycle(self) -> None:
        for source in self.sources:
            try:
                await source.on_cycle()
            except Exception:
                logger.exception("Cycle failed for %s", type(source).__name__)

    async def stop(self) -> None:
        for source in reversed(self.sources):
            try:
                await source.stop()
            except Exception:
                logger.exception("Stopping %s failed", type(source).__name__)
