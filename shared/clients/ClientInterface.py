from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Common base of every backend client (embed, llm, rag, db).

    Settings are read from ``<TYPE>_<ENGINE>_<KEY>`` environment variables and
    checked once on construction, so a misconfigured engine fails at startup.
    Transport details live in HttpClientInterface and SqlClientInterface.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Reads every declared engine setting once.

        Raises:
            ValueError: If a setting without default is missing or has the wrong type.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client type, e.g. "embed"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine name, e.g. "ollama"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns:
            list[EnvConfig]: The engine settings this client reads, with their defaults and types.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        # e.g. "RAG_QDRANT_API_KEY"
        return "_".join((self.get_client_type(), self.get_engine_name(), raw_key)).upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads an engine specific setting.

        Args:
            raw_key (str): Key without the type and engine prefix, e.g. "BASE_URL".
            default (Any): Returned when the variable is unset. None makes the setting mandatory.
            val_type (str): One of "string", "number", "bool", "list".
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        reader = readers.get(val_type)
        if reader is None:
            raise ValueError(
                f"Unsupported value type '{val_type}' for setting '{raw_key}' "
                f"of {self.get_client_type()} client '{self.get_engine_name()}'."
            )
        return reader(self._get_config_key_name(raw_key), default=default)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        """Open connections and any other resources needed by the client."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release all resources opened by boot()."""
        pass

    @abstractmethod
    async def do_healthcheck(self) -> bool:
        """
        Returns:
            bool: True if the backend answered successfully.
        """
        pass
