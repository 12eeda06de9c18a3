from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig, GenerationParams


class LLMClientOllama(LLMClientInterface):
    """Chat through a local or proxied Ollama server (/api/chat, non-streaming).

    LLM_OLLAMA_KEEP_ALIVE controls how long Ollama keeps the model loaded
    between conversations. An optional API key is sent as bearer token for
    setups behind an authenticating proxy.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._server_url = self.get_config_val("BASE_URL")
        self._token = self.get_config_val("API_KEY", default="")
        self._keep_alive = self.get_config_val("KEEP_ALIVE", default="5m")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_chat_model(self) -> str:
        return "llama3.1"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="KEEP_ALIVE", val_type="string", default="5m"),
            EnvConfig(env_key="NATIVE_SYSTEM_ROLE", val_type="bool", default=True),
        ]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    def _get_base_url(self) -> str:
        return self._server_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], params: GenerationParams) -> dict:
        # Ollama takes role/content messages as they are, sampling lives in "options"
        options = {
            "temperature": params.temperature,
            "top_p": params.top_p,
            "top_k": params.top_k,
            "num_predict": params.max_output_tokens,
        }
        return {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "keep_alive": self._keep_alive,
            "options": options,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        if "error" in response_data:
            raise ValueError(f"Ollama reported an error for model '{self.chat_model}': {response_data['error']}")
        message = response_data.get("message")
        if not isinstance(message, dict) or "content" not in message:
            raise ValueError(f"Ollama chat response has no message, keys: {sorted(response_data)}")
        return message["content"] or ""
