from abc import abstractmethod

import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import GenerationParams
from shared.models.errors import EmptyGenerationFailure, GenerationFailure


class LLMClientInterface(HttpClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        client_type = self.get_client_type().upper()
        self.chat_model = helper_config.get_string_val(f"{client_type}_CHAT_MODEL", default=self._get_default_chat_model())
        self.generation_params = GenerationParams(
            temperature=helper_config.get_float_val(f"{client_type}_TEMPERATURE", default=0.9),
            top_p=helper_config.get_float_val(f"{client_type}_TOP_P", default=0.95),
            top_k=helper_config.get_int_val(f"{client_type}_TOP_K", default=40),
            max_output_tokens=helper_config.get_int_val(f"{client_type}_MAX_OUTPUT_TOKENS", default=1024),
        )
        self.native_system_role = self.get_config_val("NATIVE_SYSTEM_ROLE", default=True, val_type="bool")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the chat model used when LLM_CHAT_MODEL is not set."""
        pass

    def supports_system_role(self) -> bool:
        """Whether the system prompt can be sent through the backend's own system channel.

        When False, callers inject the system prompt as leading user/assistant turns.
        """
        return self.native_system_role

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], params: GenerationParams) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "system", "content": "..."}, {"role": "user", "content": "..."}]).
            params (GenerationParams): Sampling parameters.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The assistant reply text, possibly empty.

        Raises:
            ValueError: If the response does not have the expected shape.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict], params: GenerationParams | None = None) -> str:
        """Send a chat/completion request and return the assistant reply text.

        The full completion is awaited, no streaming.

        Args:
            messages (list[dict]): OpenAI-format messages, last one being the new user turn.
            params (GenerationParams | None): Sampling parameters, defaults to the configured ones.

        Returns:
            str: The assistant reply text, stripped.

        Raises:
            GenerationFailure: If the request fails or the response cannot be parsed.
            EmptyGenerationFailure: If the model answered with no text.
        """
        body = self.get_chat_payload(messages, params or self.generation_params)
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_chat(),
                json=body,
                raise_on_error=True,
            )
            reply = self.extract_chat_response(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationFailure(f"Chat request to '{self.get_engine_name()}' failed: {e}") from e
        if not reply or not reply.strip():
            raise EmptyGenerationFailure(f"Chat model '{self.chat_model}' returned an empty reply.")
        return reply.strip()
