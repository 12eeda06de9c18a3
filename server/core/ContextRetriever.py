import asyncio
from dataclasses import dataclass, field

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.KnowledgeHit import InventoryHit
from shared.helper.HelperConfig import HelperConfig
from shared.models.persona import PersonaTemplate


@dataclass
class RetrievedContext:
    """Plain-text knowledge blocks ready to be interpolated into the system prompt."""

    document_blocks: list[str] = field(default_factory=list)
    inventory_blocks: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.document_blocks and not self.inventory_blocks


class ContextRetriever:
    """Fetches the top-k documents and inventory items for a query and renders them as text."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        persona: PersonaTemplate,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._persona = persona

    ##########################################
    ############### CORE #####################
    ##########################################

    async def retrieve_context(self, owner_id: str, query_vector: list[float]) -> RetrievedContext:
        """Search both collections for owner_id and render the hits.

        Args:
            owner_id (str): The tenant whose knowledge may be used.
            query_vector (list[float]): Embedding of the user message.

        Returns:
            RetrievedContext: Rendered blocks, empty lists when nothing matched.

        Raises:
            RetrievalFailure: If either search fails.
        """
        documents, inventory = await asyncio.gather(
            self._rag_client.do_search_documents(owner_id, query_vector),
            self._rag_client.do_search_inventory(owner_id, query_vector),
        )
        self.logging.debug(
            "Retrieved %d document(s) and %d vehicle(s) for owner %s.", len(documents), len(inventory), owner_id
        )
        return RetrievedContext(
            document_blocks=[doc.content for doc in documents if doc.content],
            inventory_blocks=[self.render_inventory_item(item) for item in inventory],
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def render_inventory_item(self, item: InventoryHit) -> str:
        persona = self._persona
        return persona.render_inventory_item(
            name=item.name,
            type=item.type or "",
            price=self._format_price(item.price) or persona.price_placeholder,
            description=item.description or persona.description_placeholder,
            images=item.image_url or persona.images_placeholder,
        )

    @staticmethod
    def _format_price(price: float | str | None) -> str:
        if price is None:
            return ""
        if isinstance(price, float):
            # 18500.0 -> "18500"
            return str(int(price)) if price.is_integer() else str(price)
        return str(price).strip()
