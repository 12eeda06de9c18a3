from shared.clients.ClientManager import ClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientManager(ClientManager):
    """Manager class to instantiate the LLM client configured in LLM_ENGINE."""

    client_type = "llm"
    class_prefix = "LLM"

    def get_client(self) -> LLMClientInterface:
        """Return the instantiated LLM client."""
        return self.client
