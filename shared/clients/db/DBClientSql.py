from shared.clients.SqlClientInterface import SqlClientInterface
from shared.clients.db.tables import Base
from shared.helper.HelperConfig import HelperConfig


class DBClientSql(SqlClientInterface):
    """Relational store for conversations and messages.

    Any SQLAlchemy async URL works (DB_SQL_URL), e.g. postgresql+asyncpg in
    production or sqlite+aiosqlite for local runs and tests.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "db"

    def _get_engine_name(self) -> str:
        return "Sql"

    ##########################################
    ################ SCHEMA ##################
    ##########################################

    async def do_create_schema(self) -> None:
        """Create the conversations and messages tables if they do not exist yet."""
        async with self.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logging.info("Conversation tables are in place.")
