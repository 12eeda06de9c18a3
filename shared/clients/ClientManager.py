from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """
    Instantiates the backend client configured for one client type.

    The engine is read from "<TYPE>_ENGINE" (e.g. EMBED_ENGINE=google) and the
    class is imported from shared.clients.<type>.<engine>.<Prefix>Client<Engine>,
    e.g. shared.clients.embed.google.EmbedClientGoogle.
    """

    client_type: str = ""
    class_prefix: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine name from ENV configuration.

        Returns:
            str: Capitalised engine name (e.g. "Ollama").

        Raises:
            ValueError: If no engine is specified in the configuration.
        """
        key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(key)
        if not engine:
            raise ValueError(f"No {self.class_prefix} engine specified in configuration ({key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Instantiates the client for the configured engine.

        Returns:
            ClientInterface: The instantiated client.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}Client{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.class_prefix} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.class_prefix, engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client
