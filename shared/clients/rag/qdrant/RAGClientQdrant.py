import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.KnowledgeHit import KnowledgeCollection
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import RetrievalFailure


class RAGClientQdrant(HttpClientInterface, RAGClientInterface):
    """Knowledge store backed by two Qdrant collections with cosine distance.

    Point payloads carry the same fields as the CRM tables (user_id, content,
    name, price, is_deleted, ...). For cosine collections Qdrant already
    reports the similarity as "score".
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collections = {
            KnowledgeCollection.DOCUMENTS: self.get_config_val("DOCUMENTS_COLLECTION", default="bot_documents", val_type="string"),
            KnowledgeCollection.INVENTORY: self.get_config_val("INVENTORY_COLLECTION", default="car_stock", val_type="string"),
        }

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self, collection: KnowledgeCollection) -> str:
        return self._collections[collection]

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="DOCUMENTS_COLLECTION", val_type="string", default="bot_documents"),
            EnvConfig(env_key="INVENTORY_COLLECTION", val_type="string", default="car_stock"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_search(self, collection: KnowledgeCollection) -> str:
        return f"/collections/{self.get_collection_name(collection)}/points/search"

    def _get_endpoint_check_collection_existence(self, collection: KnowledgeCollection) -> str:
        return f"/collections/{self.get_collection_name(collection)}/exists"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_search_payload(self, collection: KnowledgeCollection, owner_id: str, query_vector: list[float], limit: int) -> dict:
        """Build a points/search body with the mandatory owner filter.

        Inventory searches additionally exclude soft-deleted items.
        """
        search_filter: dict = {
            "must": [{"key": "user_id", "match": {"value": owner_id}}],
        }
        if collection == KnowledgeCollection.INVENTORY:
            search_filter["must_not"] = [{"key": "is_deleted", "match": {"value": True}}]
        return {
            "vector": query_vector,
            "filter": search_filter,
            "limit": limit,
            "with_payload": True,
            "with_vector": False,
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        """Flatten Qdrant's scored points into {"id", "score", **payload} dicts."""
        hits: list[dict] = []
        for point in raw_response.get("result") or []:
            payload = point.get("payload") or {}
            hits.append({**payload, "id": str(point.get("id")), "score": point.get("score", 0.0)})
        return hits

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self, collection: KnowledgeCollection) -> bool:
        """Check if a knowledge collection exists in Qdrant."""
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence(collection))
        return bool(resp.json().get("result", {}).get("exists"))

    async def _do_similarity_search(
        self,
        collection: KnowledgeCollection,
        owner_id: str,
        query_vector: list[float],
        limit: int,
    ) -> list[dict]:
        try:
            resp = await self.do_request(
                method="POST",
                json=self.get_search_payload(collection, owner_id, query_vector, limit),
                endpoint=self._get_endpoint_search(collection),
                raise_on_error=True,
            )
            return self.extract_search_hits(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            raise RetrievalFailure(f"Qdrant search on '{self.get_collection_name(collection)}' failed: {e}") from e
