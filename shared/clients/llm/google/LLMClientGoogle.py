from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig, GenerationParams


class LLMClientGoogle(LLMClientInterface):
    """Chat completions from the Gemini generateContent API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Google"

    def _get_default_chat_model(self) -> str:
        return "gemini-2.0-flash-001"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="NATIVE_SYSTEM_ROLE", val_type="bool", default=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v1beta/models/{self.chat_model}"

    def _get_endpoint_chat(self) -> str:
        return f"/v1beta/models/{self.chat_model}:generateContent"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], params: GenerationParams) -> dict:
        """Translate OpenAI-format messages into a generateContent body.

        "system" messages go into systemInstruction, "assistant" becomes "model".

        Returns:
            dict: {"contents": [...], "generationConfig": {...}[, "systemInstruction": {...}]}
        """
        system_parts: list[dict] = []
        contents: list[dict] = []
        for message in messages:
            if message["role"] == "system":
                system_parts.append({"text": message["content"]})
                continue
            role = "user" if message["role"] == "user" else "model"
            contents.append({"role": role, "parts": [{"text": message["content"]}]})

        payload: dict = {
            "contents": contents,
            "generationConfig": {
                "temperature": params.temperature,
                "topP": params.top_p,
                "topK": params.top_k,
                "maxOutputTokens": params.max_output_tokens,
            },
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Join the text parts of the first candidate.

        Raises:
            ValueError: If the response has no candidates (e.g. the prompt was blocked)
                or the candidate does not have the content/parts shape.
        """
        candidates = response_data.get("candidates")
        if not candidates:
            feedback = response_data.get("promptFeedback", {})
            raise ValueError(
                "Google chat response does not contain candidates. "
                "Prompt feedback: %s" % feedback
            )
        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts", []) if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise ValueError(f"Google chat candidate has no content parts: {candidate!r:.200}")
        texts = []
        for part in parts:
            if not isinstance(part, dict) or not isinstance(part.get("text", ""), str):
                raise ValueError(f"Google chat response has a malformed part: {part!r:.200}")
            texts.append(part.get("text", ""))
        return "".join(texts)
