from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """
    Manager class to instantiate the knowledge store client configured in RAG_ENGINE
    ("qdrant" or "pgvector").
    """

    client_type = "rag"
    class_prefix = "RAG"

    def get_client(self) -> RAGClientInterface:
        """
        Returns:
            RAGClientInterface: The RAG client instance.
        """
        return self.client
