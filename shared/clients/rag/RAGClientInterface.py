from abc import abstractmethod

from pydantic import ValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.KnowledgeHit import DocumentHit, InventoryHit, KnowledgeCollection, KnowledgeHit
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import RetrievalFailure

_HIT_MODELS: dict[KnowledgeCollection, type[KnowledgeHit]] = {
    KnowledgeCollection.DOCUMENTS: DocumentHit,
    KnowledgeCollection.INVENTORY: InventoryHit,
}


class RAGClientInterface(ClientInterface):
    """Read-only similarity search over the two knowledge collections.

    Every search is scoped to one owner. Engines filter by owner (and, for
    inventory, by the soft-delete flag) before ranking; this interface checks
    both again on every returned row so that a misbehaving backend can never
    leak another tenant's data into a prompt.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.top_k = helper_config.get_int_val(f"{self.get_client_type().upper()}_TOP_K", default=3)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def _do_similarity_search(
        self,
        collection: KnowledgeCollection,
        owner_id: str,
        query_vector: list[float],
        limit: int,
    ) -> list[dict]:
        """
        Runs the backend-specific top-k cosine similarity search.

        Args:
            collection (KnowledgeCollection): Which collection to search.
            owner_id (str): Only rows owned by this user may be ranked.
            query_vector (list[float]): The query embedding.
            limit (int): Maximum number of rows.

        Returns:
            list[dict]: One dict per row with the hit fields plus "id", "user_id" and "score".

        Raises:
            RetrievalFailure: If the backend query fails.
        """
        pass

    async def do_top_k_similar(
        self,
        collection: KnowledgeCollection,
        owner_id: str,
        query_vector: list[float],
        limit: int | None = None,
    ) -> list[KnowledgeHit]:
        """Return the rows most similar to query_vector, highest similarity first.

        Ties keep the order the backend returned them in.

        Args:
            collection (KnowledgeCollection): Which collection to search.
            owner_id (str): The requesting tenant.
            query_vector (list[float]): The query embedding.
            limit (int | None): Maximum number of rows, defaults to RAG_TOP_K.

        Returns:
            list[KnowledgeHit]: DocumentHit or InventoryHit instances.

        Raises:
            RetrievalFailure: If the backend fails or returns rows that cannot be parsed.
        """
        limit = self.top_k if limit is None else limit
        rows = await self._do_similarity_search(collection, owner_id, query_vector, limit)

        hit_model = _HIT_MODELS[collection]
        hits: list[KnowledgeHit] = []
        for row in rows:
            try:
                hit = hit_model.model_validate(row)
            except ValidationError as e:
                raise RetrievalFailure(f"Malformed {collection.value} row from '{self.get_engine_name()}': {e}") from e
            if hit.user_id != owner_id:
                self.logging.error(
                    "Dropping %s row %s owned by another tenant from '%s' results.",
                    collection.value, hit.id, self.get_engine_name(),
                )
                continue
            if isinstance(hit, InventoryHit) and hit.is_deleted:
                continue
            hits.append(hit)

        hits.sort(key=lambda h: h.score, reverse=True)
        self.logging.debug(
            "Similarity search on %s for owner %s returned %d hit(s).", collection.value, owner_id, len(hits)
        )
        return hits[:limit]

    async def do_search_documents(self, owner_id: str, query_vector: list[float], limit: int | None = None) -> list[DocumentHit]:
        return await self.do_top_k_similar(KnowledgeCollection.DOCUMENTS, owner_id, query_vector, limit)

    async def do_search_inventory(self, owner_id: str, query_vector: list[float], limit: int | None = None) -> list[InventoryHit]:
        return await self.do_top_k_similar(KnowledgeCollection.INVENTORY, owner_id, query_vector, limit)
