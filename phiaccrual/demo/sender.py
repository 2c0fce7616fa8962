import asyncio
import logging

from phiaccrual.core.utils.retry import BackoffRetry

KEEPALIVE = b"\n"


class Sender:
    """Connects to a receiver and writes one keepalive byte per interval."""

    def __init__(self, address: str, interval: float = 1.0, backoff: BackoffRetry | None = None) -> None:
        self._address = address
        self._interval = interval
        self._backoff = backoff or BackoffRetry()

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self.sent = 0

        self._logger = logging.getLogger("phiaccrual.demo.sender")

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        host, port = self._address.rsplit(":", 1)
        self._logger.debug(f"Connecting to {self._address}")

        while not self.connected:
            try:
                self._reader, self._writer = await asyncio.open_connection(host=host, port=int(port))
            except OSError as ex:
                delay = self._backoff.next_delay()
                self._logger.warning(
                    f"Connect failed to {self._address}: {ex}. "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

        self._backoff.reset()
        self._logger.info(f"Connected to {self._address}")

    async def run(self, count: int | None = None) -> None:
        """Send `count` keepalives, or keep sending until cancelled when None."""
        await self.connect()
        try:
            while count is None or self.sent < count:
                self._writer.write(KEEPALIVE)
                await self._writer.drain()
                self.sent += 1
                self._logger.debug("Wrote keepalive")
                await asyncio.sleep(self._interval)
        finally:
            await self.close()

    async def close(self) -> None:
        if self._writer is None:
            return

        self._writer.close()
        try:
            await self._writer.wait_closed()
        except ConnectionError as ex:
            self._logger.debug(f"Error while closing {self._address}: {ex}")
        self._writer = None
        self._reader = None
