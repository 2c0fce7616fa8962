import asyncio
import enum
import logging
import time
from collections import Counter
from typing import Callable

from phiaccrual.core.detector import PhiFailureDetector, PhiSample
from phiaccrual.core.exception import SearchDidNotConverge
from phiaccrual.core.utils.sig import signal_handler
from phiaccrual.demo.settings import NANOS_PER_SECOND, ReceiverSettings

Clock = Callable[[], int]


class Outcome(enum.Enum):
    CLOSED = "closed"
    ABANDONED = "abandoned"
    FAILED = "failed"


class ConnectionMonitor:
    """
    Suspicion bookkeeping for one connection.

    Owns the connection's detector, counts keepalives received while phi was
    low, and turns the detector's crossing predictions into read timeouts.
    """

    def __init__(self, settings: ReceiverSettings, detector: PhiFailureDetector) -> None:
        self._settings = settings
        self.detector = detector
        self.stable = 0
        self._logger = logging.getLogger("phiaccrual.demo.monitor")

    def on_keepalive(self, t: int) -> float:
        """Account for a keepalive observed at `t`, returns phi just before it."""
        phi = self.detector.phi(t)
        if phi <= self._settings.stable_phi:
            self.stable += 1
        if self.stable == self._settings.min_stable:
            self._logger.info(f"Now stable at {self.stable}/{phi:.3f}")

        self.detector.heartbeat(t)
        return phi

    def should_abandon(self, t: int) -> bool:
        phi = self.detector.phi(t)
        self._logger.debug(f"Read timeout, stable:{self.stable}; phi:{phi:.3f}")
        return self.stable > self._settings.min_stable and phi > self._settings.abandon_phi

    def next_level(self, phi: float) -> float | None:
        for level in self._settings.thresholds:
            if phi < level:
                return level
        return None

    def next_timeout(self, t: int) -> float | None:
        """
        Seconds until phi is predicted to reach the next threshold above its
        current value, or None when phi is past every threshold or will
        never reach the next one.
        """
        phi = self.detector.phi(t)
        level = self.next_level(phi)
        if level is None:
            return None

        try:
            crossing = self.detector.next_crossing_at(t, self._settings.tolerance, level)
        except SearchDidNotConverge as ex:
            self._logger.warning(f"No predictable crossing of phi {level}: {ex}")
            return None

        timeout = (crossing - t) / NANOS_PER_SECOND
        self._logger.debug(f"phi:{phi:.3f}; next:{level}; in {timeout:.6f}s")
        return timeout


class Receiver:
    """
    TCP server watching every accepted connection with its own φ detector.

    Each byte received is a heartbeat. The read timeout follows the predicted
    phi crossings so the receiver wakes up exactly when suspicion rises, and
    closes connections that were stable but went silent for too long.
    """

    def __init__(
        self,
        host: str,
        port: int,
        settings: ReceiverSettings | None = None,
        clock: Clock = time.monotonic_ns,
    ) -> None:
        self.host = host
        self.port = port
        self._settings = settings or ReceiverSettings()
        self._clock = clock
        self._start = clock()

        self.stop_event = asyncio.Event()
        self.tasks: set[asyncio.Task] = set()
        self.outcomes: Counter[Outcome] = Counter()

        self._server: asyncio.Server | None = None
        self._logger = logging.getLogger("phiaccrual.demo.receiver")

    def now(self) -> int:
        return self._clock() - self._start

    def trace(self, sample: PhiSample) -> None:
        self._logger.debug(
            f"gap:{sample.gap:e}; mean:{sample.mean:e}; stddev:{sample.stddev:e}; "
            f"x:{sample.x:e}; p_later:{sample.p_later:e}; phi:{sample.phi:.3f}"
        )

    def create_monitor(self) -> ConnectionMonitor:
        detector = PhiFailureDetector(self._settings.detector_config(), observer=self.trace)
        return ConnectionMonitor(self._settings, detector)

    async def serve(self) -> None:
        def graceful_exit(*_) -> None:
            self.stop_event.set()

        with signal_handler(graceful_exit):
            await self.start()
            await self.stop_event.wait()
            await self.shutdown()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle, host=self.host, port=self.port)
        sockname = self._server.sockets[0].getsockname()
        self.port = sockname[1]
        self._logger.info(f"Listening at {self.host}:{self.port}")

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            self.tasks.add(task)

        peer = writer.get_extra_info("peername")
        self._logger.info(f"Accepted from {peer}")
        try:
            outcome = await self.watch(reader, self.create_monitor())
            self.outcomes[outcome] += 1
            self._logger.info(f"Connection from {peer} {outcome.value}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError as ex:
                self._logger.debug(f"Error while closing {peer}: {ex}")
            if task is not None:
                self.tasks.discard(task)

    async def watch(self, reader: asyncio.StreamReader, monitor: ConnectionMonitor) -> Outcome:
        monitor.detector.heartbeat(self.now())
        timeout = monitor.next_timeout(self.now())

        while True:
            try:
                data = await asyncio.wait_for(reader.read(1), timeout=timeout)
            except asyncio.TimeoutError:
                t = self.now()
                if monitor.should_abandon(t):
                    self._logger.warning(
                        f"Bailing on unstable connection: {monitor.stable}/{monitor.detector.phi(t):.3f}"
                    )
                    return Outcome.ABANDONED
            except ConnectionError as ex:
                self._logger.error(f"Read error: {ex}")
                return Outcome.FAILED
            else:
                if not data:
                    return Outcome.CLOSED

                t = self.now()
                phi = monitor.on_keepalive(t)
                self._logger.info(f"Read {len(data)} byte(s); stable:{monitor.stable}; phi:{phi:.3f}")

            timeout = monitor.next_timeout(self.now())

    async def shutdown(self) -> None:
        if self._server is None:
            return

        self._server.close()
        try:
            await asyncio.wait_for(
                self._wait_tasks_complete(),
                timeout=self._settings.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Cancel {len(self.tasks)} connection(s), timeout graceful shutdown exceeded"
            )
            for task in self.tasks.copy():
                task.cancel("Timeout graceful shutdown exceeded")

        await self._server.wait_closed()
        self._server = None

    async def _wait_tasks_complete(self) -> None:
        if self.tasks:
            self._logger.info("Waiting for connections to close.")

        while self.tasks:
            await asyncio.sleep(0.1)
