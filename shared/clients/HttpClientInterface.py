from abc import abstractmethod

import httpx
from httpx._types import QueryParamTypes

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class HttpClientInterface(ClientInterface):
    """Base for clients talking to a REST backend through a shared httpx.AsyncClient."""

    def __init__(self, helper_config: HelperConfig):
        self._client: httpx.AsyncClient | None = None
        self._transport: httpx.AsyncBaseTransport | None = None
        super().__init__(helper_config=helper_config)

    ################ REQUEST PARTS ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers sent with every request, empty when the engine runs without a key."""
        pass

    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def set_transport(self, transport: httpx.AsyncBaseTransport) -> None:
        """Use a custom transport for the next boot(), e.g. httpx.MockTransport."""
        self._transport = transport

    async def boot(self) -> None:
        """Initialise the HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> bool:
        try:
            response = await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())
        except httpx.HTTPError as e:
            self.logging.warning("Healthcheck of %s client '%s' failed: %s", self.get_client_type(), self.get_engine_name(), e)
            return False
        return response.is_success

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def _build_url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a JSON request to the backend.

        Args:
            method: HTTP method.
            endpoint: Path below the base URL, leading slash optional.
            json: Request body.
            params: URL query parameters.
            raise_on_error: Log and raise on any non-2xx status.

        Raises:
            RuntimeError: If boot() has not been called.
            httpx.HTTPStatusError: On a non-2xx status when raise_on_error is True.
            httpx.HTTPError: On transport errors.
        """
        if self._client is None:
            raise RuntimeError(f"{self.get_client_type()} client '{self.get_engine_name()}' is not booted. Call boot() first.")

        url = self._build_url(endpoint)
        response = await self._client.request(
            method,
            url,
            json=json,
            params=params,
            headers=self._get_auth_header(),
            timeout=self.timeout,
        )
        if raise_on_error and not response.is_success:
            self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:200])
            response.raise_for_status()
        return response
