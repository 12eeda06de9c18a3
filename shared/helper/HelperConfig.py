"""Typed access to the environment variables the sales bot is configured with."""

import logging
import os

_TRUE_VALUES = ("true", "1", "yes")


class HelperConfig:
    """Reads settings from the environment and hands out the application logger.

    Keys are case-insensitive and empty values count as unset. Every getter
    raises ValueError when a variable is unset and no default was given.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _lookup(self, key: str, default) -> str | None:
        name = key.upper()
        value = (os.getenv(name) or "").strip()
        if value:
            return value
        if default is None:
            raise ValueError(f"Environment variable '{name}' is not set.")
        return None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        value = self._lookup(key, default)
        return default if value is None else value

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Numbers with a '.' become float, all others int.

        Raises:
            ValueError: If the variable is unset without default or not numeric.
        """
        value = self._lookup(key, default)
        if value is None:
            return default
        parse = float if "." in value else int
        try:
            return parse(value)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{value}'.")

    def get_float_val(self, key: str, default: float | None = None) -> float:
        return float(self.get_number_val(key, default=default))

    def get_int_val(self, key: str, default: int | None = None) -> int:
        return int(self.get_number_val(key, default=default))

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """"true", "1" and "yes" (any case) are True, every other value is False."""
        value = self._lookup(key, default)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as "[a,b,c]".

        Args:
            key (str): Environment variable name.
            default (list[str] | None): Returned when the variable is unset.
            separator (str): Element delimiter inside the brackets.
            element_type (type): Callable each element is converted with.

        Raises:
            ValueError: On missing brackets or an element element_type rejects.
        """
        value = self._lookup(key, default)
        if value is None:
            return default
        if not (value.startswith("[") and value.endswith("]")):
            raise ValueError(
                f"Environment variable '{key.upper()}' must have the format '[a{separator}b{separator}...]', got '{value}'."
            )
        items = [item.strip() for item in value[1:-1].split(separator)]
        try:
            return [element_type(item) for item in items if item]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' has an element that is not {element_type.__name__}: {e}")

    def get_logger(self) -> logging.Logger:
        return self._logger
