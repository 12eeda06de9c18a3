from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting required by a backend client.

    Attributes:
        env_key (str): The raw key, without the "<TYPE>_<ENGINE>_" prefix (e.g. "BASE_URL").
        val_type (str): One of "string", "number", "bool", "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset.
            None marks the setting as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class GenerationParams(BaseModel):
    """Sampling parameters passed to the generative model on every call.

    The defaults keep replies varied but bounded in length.
    """

    temperature: float = 0.9
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 1024
