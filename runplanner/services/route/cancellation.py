import asyncio


class GenerationCancelled(RuntimeError):
    """Raised when the caller abandons a generation call."""


class CancellationToken:
    """Caller-owned flag shared by every outstanding call of one generation."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise GenerationCancelled("Route generation was cancelled")
