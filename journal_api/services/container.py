"""
Service Container - Dependency Injection Container

Wires the key-value store, domain services and date provider together.
Services are lazy-loaded on first access via properties.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from journal_api.config import Settings, settings as default_settings
from journal_api.db.kv_store import InMemoryKeyValueStore, KeyValueStore
from journal_api.exceptions import ConfigurationError
from journal_api.utils.datetime_helpers import DateProvider

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Infrastructure dependencies (store, database, date provider) are
    injected; domain services are built lazily on top of them.
    """

    # Infrastructure dependencies (injected)
    store: KeyValueStore
    date_provider: DateProvider
    database: Optional[object] = None  # Database instance when backed by Postgres

    # Services (lazy-loaded via properties)
    _structure_registry: Optional[object] = field(default=None, init=False, repr=False)
    _entry_store: Optional[object] = field(default=None, init=False, repr=False)
    _action_engine: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def structure_registry(self):
        """Get StructureRegistry instance (lazy-loaded)"""
        if self._structure_registry is None:
            from journal_api.services.structure_service import StructureRegistry
            self._structure_registry = StructureRegistry(self.store, self.date_provider)
            logger.debug("StructureRegistry instantiated")
        return self._structure_registry

    @property
    def entry_store(self):
        """Get EntryStore instance (lazy-loaded)"""
        if self._entry_store is None:
            from journal_api.services.entry_service import EntryStore
            self._entry_store = EntryStore(self.store, self.structure_registry)
            logger.debug("EntryStore instantiated")
        return self._entry_store

    @property
    def action_engine(self):
        """Get ActionEngine instance (lazy-loaded)"""
        if self._action_engine is None:
            from journal_api.services.action_service import ActionEngine
            self._action_engine = ActionEngine(
                self.store,
                self.structure_registry,
                self.entry_store,
                self.date_provider
            )
            logger.debug("ActionEngine instantiated")
        return self._action_engine

    async def startup(self) -> None:
        """Open the database pool and make sure the table exists"""
        if self.database is not None:
            await self.database.init_pool()
            await self.database.ensure_schema()

    async def shutdown(self) -> None:
        if self.database is not None:
            await self.database.close_pool()


def build_container(config: Optional[Settings] = None) -> ServiceContainer:
    """
    Build a container from settings.

    STORE_BACKEND=memory gives a non-persistent in-process store; anything
    else uses Postgres (the pool is opened by startup()).

    Raises:
        ConfigurationError: If the pool bounds are inconsistent
    """
    config = config or default_settings
    date_provider = DateProvider(config.journal_timezone)

    if config.store_backend == "memory":
        logger.info("Using in-memory key-value store")
        return ServiceContainer(store=InMemoryKeyValueStore(), date_provider=date_provider)

    from journal_api.db.connection import Database
    from journal_api.db.kv_store import PostgresKeyValueStore

    if config.db_pool_min_size > config.db_pool_max_size:
        raise ConfigurationError(
            f"DB_POOL_MIN_SIZE ({config.db_pool_min_size}) exceeds "
            f"DB_POOL_MAX_SIZE ({config.db_pool_max_size})",
            config_key="DB_POOL_MIN_SIZE",
        )

    database = Database(
        connection_string=config.database_url,
        table=config.journal_table,
        min_size=config.db_pool_min_size,
        max_size=config.db_pool_max_size,
    )
    logger.info(f"Using Postgres key-value store (table {config.journal_table})")
    return ServiceContainer(
        store=PostgresKeyValueStore(database),
        date_provider=date_provider,
        database=database,
    )
