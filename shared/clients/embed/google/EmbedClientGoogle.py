from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientGoogle(EmbedClientInterface):
    """Embeddings from the Gemini API (generativelanguage.googleapis.com)."""

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

    def _get_default_model(self) -> str:
        return "text-embedding-004"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v1beta/models/{self.embed_model}"

    def get_endpoint_embedding(self) -> str:
        return f"/v1beta/models/{self.embed_model}:batchEmbedContents"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build a batchEmbedContents request body, one request per text.

        Returns:
            dict: {"requests": [{"model": "models/...", "content": {"parts": [{"text": "..."}]}}, ...]}
        """
        requests = []
        for text in texts:
            request: dict = {"model": f"models/{self.embed_model}", "content": {"parts": [{"text": text}]}}
            if self.dimensions:
                request["outputDimensionality"] = self.dimensions
            requests.append(request)
        return {"requests": requests}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract vectors from a batchEmbedContents response ({"embeddings": [{"values": [...]}, ...]})."""
        embeddings = response_data.get("embeddings")
        if not embeddings:
            raise ValueError(
                "Google response does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        if not isinstance(embeddings, list):
            raise ValueError(f"Google response embeddings are not a list: {embeddings!r:.200}")
        vectors = []
        for item in embeddings:
            values = (item.get("values") or []) if isinstance(item, dict) else None
            if not isinstance(values, list) or not all(isinstance(v, (int, float)) for v in values):
                raise ValueError(f"Google response contains a malformed embedding: {item!r:.200}")
            vectors.append(values)
        if not all(vectors):
            raise ValueError("Google response contains an empty embedding vector.")
        return vectors
