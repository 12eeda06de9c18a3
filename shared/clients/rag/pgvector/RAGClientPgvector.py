from sqlalchemy import Select, false, select
from sqlalchemy.exc import SQLAlchemyError

from shared.clients.SqlClientInterface import SqlClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.KnowledgeHit import KnowledgeCollection
from shared.clients.rag.pgvector.tables import BotDocumentRecord, CarStockRecord
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import RetrievalFailure


class RAGClientPgvector(SqlClientInterface, RAGClientInterface):
    """Knowledge store read straight from the CRM's PostgreSQL tables via pgvector.

    Similarity is computed in SQL as 1 - (embedding <=> query), i.e. one minus
    the cosine distance. Rows without an embedding are never ranked.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Pgvector"

    ##########################################
    ############ QUERY BUILDER ###############
    ##########################################

    def build_similarity_query(
        self,
        collection: KnowledgeCollection,
        owner_id: str,
        query_vector: list[float],
        limit: int,
    ) -> Select:
        """Build the top-k query for one collection, filtered to owner_id before ranking."""
        if collection == KnowledgeCollection.DOCUMENTS:
            table = BotDocumentRecord
            columns = [table.id, table.user_id, table.title, table.category, table.content]
        else:
            table = CarStockRecord
            columns = [
                table.id, table.user_id, table.name, table.type, table.description,
                table.price, table.image_url, table.url, table.notes, table.is_deleted,
            ]

        similarity = (1 - table.embedding.cosine_distance(query_vector)).label("similarity")
        stmt = (
            select(*columns, similarity)
            .where(table.user_id == owner_id)
            .where(table.embedding.is_not(None))
        )
        if collection == KnowledgeCollection.INVENTORY:
            stmt = stmt.where(CarStockRecord.is_deleted == false())
        return stmt.order_by(similarity.desc()).limit(limit)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_similarity_search(
        self,
        collection: KnowledgeCollection,
        owner_id: str,
        query_vector: list[float],
        limit: int,
    ) -> list[dict]:
        stmt = self.build_similarity_query(collection, owner_id, query_vector, limit)
        try:
            async with self.get_sessionmaker()() as session:
                result = await session.execute(stmt)
                rows = result.mappings().all()
        except SQLAlchemyError as e:
            raise RetrievalFailure(f"pgvector search on '{collection.value}' failed: {e}") from e

        hits: list[dict] = []
        for row in rows:
            hit = dict(row)
            hit["id"] = str(hit["id"])
            hit["score"] = float(hit.pop("similarity"))
            hits.append(hit)
        return hits
