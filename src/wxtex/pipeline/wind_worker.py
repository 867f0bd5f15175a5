"""Dedicated wind encoding worker.

The u/v -> RGBA encoding is the most arithmetic-heavy step of the
pipeline, so it runs on its own thread instead of the event loop that
orchestrates frame resolution.

**Message flow:**

1. ``WindWorkerClient.encode()`` freezes the u/v arrays, registers a
   pending future under a fresh ``request_id`` and enqueues a
   ``WindRequest`` that also carries the ``correlation_key`` (time index).

2. ``WindEncoderWorker`` pops the request, encodes it and hands a
   ``WindReply`` (buffer, correlation key, width, height) back to the client.

3. The client routes the reply by ``request_id`` to the loop that asked
   for it with ``loop.call_soon_threadsafe``.

**Ownership:**

Arrays are never copied across the boundary. Inputs are made read-only
before they are enqueued and the sender does not touch them again; the
output buffer is allocated by the worker and owned by the receiving
texture once delivered.

**Correlation:**

Pending requests are keyed by a unique ``request_id`` rather than by the
time index, so two overlapping requests for the same timestep each get
their own reply.
"""

import asyncio
import itertools
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, TYPE_CHECKING

import numpy as np

from wxtex.encoding.texture import RasterTexture
from wxtex.encoding.vector import encode_wind

if TYPE_CHECKING:
    from wxtex.schemas import InternalConfig

__all__ = [
    'WindEncoderWorker',
    'WindWorkerClient',
    'WindRequest',
    'WindReply',
    'WorkerError',
    'WorkerStoppedError',
]

logger = logging.getLogger(__name__)


class WorkerError(RuntimeError):
    """Raised at the caller when the worker failed to encode a request."""


class WorkerStoppedError(WorkerError):
    """Raised when the worker is not running or stops with requests pending."""


@dataclass(frozen=True)
class WindRequest:
    """Inbound worker message."""
    u_values: np.ndarray
    v_values: np.ndarray
    num_lats: int
    num_lons: int
    correlation_key: int
    request_id: int


@dataclass(frozen=True)
class WindReply:
    """Outbound worker message. ``error`` is set instead of ``buffer`` on failure."""
    buffer: Optional[np.ndarray]
    correlation_key: int
    width: int
    height: int
    request_id: int
    error: Optional[str] = None


def _hand_off(values: np.ndarray) -> np.ndarray:
    """Give up write access to ``values`` before it crosses the worker boundary."""
    values = np.asarray(values)
    values.flags.writeable = False
    return values


class WindEncoderWorker(threading.Thread):
    """Worker thread that turns WindRequests into WindReplies.

    Parameters
    ----------
    input_queue : queue.Queue
        Queue of WindRequest messages. None signals shutdown.
    reply_fn : callable
        Called from this thread with each WindReply.
    max_speed : float
        Wind encoding half-range.
    poll_interval : float
        Seconds to block on the queue before re-checking the stop flag.
    """

    def __init__(self, input_queue: queue.Queue, reply_fn: Callable[[WindReply], None],
                 max_speed: float, poll_interval: float = 0.5,
                 name: str = "WindEncoder"):
        super().__init__(daemon=True, name=name)
        self.input_queue = input_queue
        self.reply_fn = reply_fn
        self.max_speed = max_speed
        self.poll_interval = poll_interval
        self._stop_event = threading.Event()

    def stop(self):
        """Signal worker to stop gracefully."""
        self._stop_event.set()

    def stopped(self):
        return self._stop_event.is_set()

    def handle(self, request: WindRequest) -> WindReply:
        """Encode one request."""
        texture = encode_wind(
            request.u_values,
            request.v_values,
            request.num_lats,
            request.num_lons,
            max_speed=self.max_speed,
        )
        return WindReply(
            buffer=texture.pixels,
            correlation_key=request.correlation_key,
            width=texture.width,
            height=texture.height,
            request_id=request.request_id,
        )

    def run(self):
        """Main worker loop (runs in thread). Exits on stop() or a None sentinel."""
        logger.info("Wind worker started")

        while not self.stopped():
            try:
                request = self.input_queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                if request is None:
                    break
                try:
                    reply = self.handle(request)
                except Exception as e:
                    logger.exception("Wind encoding failed for key %s", request.correlation_key)
                    reply = WindReply(
                        buffer=None,
                        correlation_key=request.correlation_key,
                        width=request.num_lons,
                        height=request.num_lats,
                        request_id=request.request_id,
                        error=f"{type(e).__name__}: {e}",
                    )
                self.reply_fn(reply)
            finally:
                self.input_queue.task_done()

        logger.info("Wind worker stopped")


def _settle(future: asyncio.Future, reply: WindReply):
    if future.done():
        return
    if reply.error is not None:
        future.set_exception(
            WorkerError(f"Wind encoding failed for key {reply.correlation_key}: {reply.error}")
        )
        return
    future.set_result(
        RasterTexture(pixels=reply.buffer, width=reply.width, height=reply.height)
    )


def _fail(future: asyncio.Future, message: str):
    if not future.done():
        future.set_exception(WorkerStoppedError(message))


class WindWorkerClient:
    """Event-loop side of the wind worker.

    Owns the request queue, the worker thread and the table of pending
    requests. Safe to use from several event loops (one per thread).

    Examples
    --------
    >>> client = WindWorkerClient(config)
    >>> client.start()
    >>> texture = await client.encode(u, v, num_lats, num_lons, correlation_key=3)
    >>> client.stop()
    """

    def __init__(self, config: "InternalConfig"):
        self.max_speed = config.encoding.wind_max_speed
        self.poll_interval = config.worker.poll_interval
        self.join_timeout = config.worker.join_timeout
        self.queue_size = config.worker.queue_size
        self.request_queue: queue.Queue = queue.Queue(maxsize=self.queue_size)
        self.worker: Optional[WindEncoderWorker] = None

        self._pending: Dict[int, Tuple[asyncio.AbstractEventLoop, asyncio.Future, int]] = {}
        self._lock = threading.Lock()
        self._request_ids = itertools.count(1)

    @property
    def running(self) -> bool:
        return self.worker is not None and self.worker.is_alive()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def start(self):
        """Start the worker thread. No-op if already running."""
        if self.running:
            return
        # A previous stop may have left its sentinel behind.
        self.request_queue = queue.Queue(maxsize=self.queue_size)
        self.worker = WindEncoderWorker(
            input_queue=self.request_queue,
            reply_fn=self._deliver,
            max_speed=self.max_speed,
            poll_interval=self.poll_interval,
        )
        self.worker.start()

    def stop(self):
        """Stop the worker and fail any request still waiting. Safe to call twice."""
        worker, self.worker = self.worker, None
        if worker is not None:
            worker.stop()
            try:
                self.request_queue.put_nowait(None)
            except queue.Full:
                pass
            worker.join(timeout=self.join_timeout)
            if worker.is_alive():
                logger.warning("Wind worker did not stop cleanly")

        with self._lock:
            pending, self._pending = self._pending, {}
        for request_id, (loop, future, key) in pending.items():
            message = f"Wind worker stopped before request {request_id} (key {key}) completed"
            try:
                loop.call_soon_threadsafe(_fail, future, message)
            except RuntimeError:
                logger.debug("Loop closed; dropping pending request %d", request_id)

    async def encode(self, u_values: np.ndarray, v_values: np.ndarray,
                     num_lats: int, num_lons: int, correlation_key: int) -> RasterTexture:
        """Encode a u/v pair on the worker and wait for the texture.

        The arrays are handed off: they become read-only and must not be
        reused by the caller.

        Raises
        ------
        WorkerStoppedError
            If the worker is not running, or stops before replying.
        WorkerError
            If encoding fails on the worker.
        """
        if not self.running:
            raise WorkerStoppedError("Wind worker is not running")

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        request_id = next(self._request_ids)
        request = WindRequest(
            u_values=_hand_off(u_values),
            v_values=_hand_off(v_values),
            num_lats=num_lats,
            num_lons=num_lons,
            correlation_key=correlation_key,
            request_id=request_id,
        )

        with self._lock:
            self._pending[request_id] = (loop, future, correlation_key)
        worker, request_queue = self.worker, self.request_queue
        try:
            try:
                request_queue.put_nowait(request)
            except queue.Full:
                await asyncio.to_thread(self._put_while_running, request_queue, worker, request)
            if worker.stopped() and not future.done():
                raise WorkerStoppedError(f"Wind worker stopped before request {request_id} was handled")
            logger.debug("Wind request %d sent (key=%d)", request_id, correlation_key)
            return await future
        finally:
            with self._lock:
                self._pending.pop(request_id, None)

    def _put_while_running(self, request_queue: queue.Queue, worker: WindEncoderWorker,
                           request: WindRequest):
        """Blocking put that gives up once ``worker`` stops draining the queue."""
        while worker.is_alive() and not worker.stopped():
            try:
                request_queue.put(request, timeout=self.poll_interval)
                return
            except queue.Full:
                continue
        raise WorkerStoppedError(
            f"Wind worker stopped before request {request.request_id} "
            f"(key {request.correlation_key}) was queued"
        )

    def _deliver(self, reply: WindReply):
        # Runs on the worker thread.
        with self._lock:
            entry = self._pending.pop(reply.request_id, None)
        if entry is None:
            logger.warning("No pending request %d for wind reply (key=%d); dropped",
                           reply.request_id, reply.correlation_key)
            return

        loop, future, _ = entry
        try:
            loop.call_soon_threadsafe(_settle, future, reply)
        except RuntimeError:
            logger.warning("Event loop closed before wind reply %d could be delivered",
                           reply.request_id)
