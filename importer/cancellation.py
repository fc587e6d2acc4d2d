import asyncio
from typing import Optional


class CancellationToken:
    """
    In-process cancellation signal for one import run.

    Checked cooperatively at batch boundaries; setting it never interrupts
    a request that is already in flight.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "Import cancelled by user") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
