from abc import abstractmethod

import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import EmbeddingFailure


class EmbedClientInterface(HttpClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        client_type = self.get_client_type().upper()
        self.embed_model = helper_config.get_string_val(f"{client_type}_MODEL", default=self._get_default_model())
        # must match the dimension of the vectors stored in the knowledge store, 0 disables the check
        self.dimensions = helper_config.get_int_val(f"{client_type}_DIMENSIONS", default=0)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """Model used when EMBED_MODEL is not set."""
        pass

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """
        Returns:
            list[list[float]]: One vector per input text, in input order.

        Raises:
            ValueError: If the body has no usable vectors.
        """
        pass

    def _check_vectors(self, vectors: list[list[float]], expected_count: int) -> None:
        if len(vectors) != expected_count:
            raise EmbeddingFailure(f"Embedding backend returned {len(vectors)} vectors for {expected_count} inputs.")
        wrong = next((v for v in vectors if self.dimensions and len(v) != self.dimensions), None)
        if wrong is not None:
            raise EmbeddingFailure(
                f"Embedding model '{self.embed_model}' returned vectors of size {len(wrong)}, expected {self.dimensions}."
            )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one or more texts in a single request.

        Raises:
            EmbeddingFailure: On transport errors, a non-2xx status, an unreadable
                body, a vector count that differs from the input count, or
                vectors that do not have EMBED_DIMENSIONS entries.
        """
        batch = [texts] if isinstance(texts, str) else list(texts)
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self.get_endpoint_embedding(),
                json=self.get_embed_payload(batch),
                raise_on_error=True,
            )
            vectors = self.extract_embeddings_from_response(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise EmbeddingFailure(f"Embedding request to '{self.get_engine_name()}' failed: {e}") from e
        self._check_vectors(vectors, len(batch))
        return vectors

    async def embed_text(self, text: str) -> list[float]:
        vectors = await self.do_embed([text])
        return vectors[0]
