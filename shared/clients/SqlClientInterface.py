from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SqlClientInterface(ClientInterface):
    """Base for clients backed by a relational database through SQLAlchemy's asyncio engine.

    The connection URL is read from "<TYPE>_<ENGINE>_URL"
    (e.g. "postgresql+asyncpg://user:pw@host/db").
    """

    def __init__(self, helper_config: HelperConfig):
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        super().__init__(helper_config=helper_config)
        self._url = self.get_config_val("URL", default=None, val_type="string")
        self._echo = self.get_config_val("ECHO", default=False, val_type="bool")

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URL", val_type="string", default=None),
            EnvConfig(env_key="ECHO", val_type="bool", default=False),
        ]

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Create the async engine and the session factory."""
        self._engine = create_async_engine(self._url, echo=self._echo)
        if self._engine.dialect.name == "sqlite":
            # sqlite ignores ON DELETE CASCADE unless enabled per connection
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)

    async def close(self) -> None:
        """Dispose the engine and its connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    async def do_healthcheck(self) -> bool:
        try:
            async with self.get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            self.logging.warning("Healthcheck of %s client '%s' failed: %s", self.get_client_type(), self.get_engine_name(), e)
            return False
        return True

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine(self) -> AsyncEngine:
        """
        Returns:
            AsyncEngine: The booted engine.

        Raises:
            RuntimeError: If boot() has not been called.
        """
        if self._engine is None:
            raise RuntimeError("Database engine not initialised. Call boot() before making queries.")
        return self._engine

    def get_sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """
        Returns:
            async_sessionmaker[AsyncSession]: Factory for new sessions on the booted engine.

        Raises:
            RuntimeError: If boot() has not been called.
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database engine not initialised. Call boot() before making queries.")
        return self._sessionmaker
