import asyncio
from typing import Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig


class ResponsePacer:
    """Delays a reply in proportion to its length so it reads like a person typing.

    delay_ms = clamp(len(text) * BOT_PACING_MS_PER_CHAR, BOT_PACING_MIN_MS, BOT_PACING_MAX_MS)
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.logging = helper_config.get_logger()
        self.enabled = helper_config.get_bool_val("BOT_PACING_ENABLED", default=True)
        self.ms_per_char = helper_config.get_int_val("BOT_PACING_MS_PER_CHAR", default=20)
        self.min_ms = helper_config.get_int_val("BOT_PACING_MIN_MS", default=1000)
        self.max_ms = helper_config.get_int_val("BOT_PACING_MAX_MS", default=6000)
        self._sleep = sleep

    def compute_delay_ms(self, text: str) -> int:
        return min(max(len(text) * self.ms_per_char, self.min_ms), self.max_ms)

    async def pace(self, text: str) -> int:
        """Wait before the reply is released.

        Returns:
            int: The delay applied in milliseconds, 0 when pacing is disabled.
        """
        if not self.enabled:
            return 0
        delay_ms = self.compute_delay_ms(text)
        self.logging.debug("Pacing reply of %d chars for %d ms.", len(text), delay_ms)
        await self._sleep(delay_ms / 1000)
        return delay_ms
