"""Event dispatcher: reads inbound frames and routes them as typed events.

The dispatcher loop:
1. Block on Transport.receive() (bounded by the read timeout)
2. Decode the packet into an Event via the protocol layer
3. Deliver it exactly once: to the handler registered for its type, or
   to the event channel if no handler is registered
4. Check the stop signal and loop

Unknown opcodes and malformed frames are dropped. Transient transport
errors are logged and the loop continues. A DeviceDisconnectedError ends
the loop and is reported to whoever started it, through wait() and the
events() iterator.
"""
from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Dict, Iterator, Mapping, Optional, Type

from ..errors import (
    DeviceDisconnectedError,
    FrameError,
    MeshDongleError,
    TransientTransportError,
)
from ..models import Event
from ..protocol import Protocol, BinaryProtocol
from ..transport.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT_MS = 500
DEFAULT_CHANNEL_SIZE = 1000
READ_ERROR_BACKOFF = 0.05  # seconds

EventHandler = Callable[[Event], None]

# Marks the end of the event stream in the channel
_STOPPED = object()


class EventDispatcher:
    """Single-threaded reader that turns inbound frames into events.

    Handlers run on the dispatcher thread, one at a time, in arrival
    order. They should return quickly; a slow handler delays every frame
    behind it.

    Example:
        >>> dispatcher = EventDispatcher(transport)
        >>> dispatcher.on(NodeAdded, lambda e: print(f"node {e.addr:#06x}"))
        >>> dispatcher.start()
        >>> for event in dispatcher.events(timeout=5.0):
        ...     print(event)  # everything without a handler
    """

    def __init__(self,
                 transport: Transport,
                 protocol: Optional[Protocol] = None,
                 read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
                 channel_size: int = DEFAULT_CHANNEL_SIZE):
        """Initialize EventDispatcher.

        Args:
            transport: Open transport to read from
            protocol: Protocol implementation (default: BinaryProtocol)
            read_timeout_ms: Upper bound on each read, and so on how long
                stop() takes to be noticed
            channel_size: Capacity of the event channel; when full the
                oldest queued event is dropped
        """
        self._transport = transport
        self._protocol = protocol or BinaryProtocol()
        self._read_timeout_ms = read_timeout_ms

        self._handlers: Dict[Type[Event], EventHandler] = {}
        self._handler_lock = threading.Lock()

        self._channel: queue.Queue = queue.Queue(maxsize=channel_size)
        self._dropped_events = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[Exception] = None

    # --- Handler registration ---

    def on(self, event_type: Type[Event], handler: EventHandler) -> Callable[[], None]:
        """Register the handler for one event type.

        Registering again for the same type replaces the previous handler.

        Returns:
            Function that removes this handler
        """
        with self._handler_lock:
            self._handlers[event_type] = handler

        def unregister():
            with self._handler_lock:
                if self._handlers.get(event_type) is handler:
                    del self._handlers[event_type]

        return unregister

    def listen(self, handlers: Optional[Mapping[Type[Event], EventHandler]] = None) -> None:
        """Register handlers and start the dispatcher thread."""
        for event_type, handler in (handlers or {}).items():
            self.on(event_type, handler)
        self.start()

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the dispatcher loop in a background thread.

        Raises:
            MeshDongleError: A previous loop was told to stop but its
                thread has not exited yet (e.g. a handler is still running)
        """
        if self.is_running:
            if self._stop_event.is_set():
                raise MeshDongleError("Previous event dispatcher thread is still stopping")
            return

        self._stop_event.clear()
        self._error = None
        self._discard_end_markers()
        self._thread = threading.Thread(
            target=self._thread_main,
            daemon=True,
            name="MeshEventDispatcher"
        )
        self._thread.start()
        logger.debug("Event dispatcher started")

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        """Signal the loop to stop and wait for the thread to exit.

        If the thread outlives the timeout it stays attached, so is_running
        remains True and start() refuses to launch a second loop.
        """
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Event dispatcher did not stop within %.1fs", timeout)
                return
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> Optional[Exception]:
        """The fatal error that ended the loop, if any."""
        return self._error

    @property
    def dropped_events(self) -> int:
        """Events discarded because the channel was full."""
        return self._dropped_events

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the dispatcher thread exits.

        Returns:
            True if the thread has exited, False on timeout

        Raises:
            DeviceDisconnectedError: The loop ended because the device went away
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                return False
        if self._error is not None:
            raise self._error
        return True

    def run(self) -> None:
        """Run the dispatcher loop in the calling thread until stop().

        Raises:
            DeviceDisconnectedError: The device went away
        """
        self._stop_event.clear()
        self._loop()

    def _loop(self) -> None:
        logger.debug("Dispatcher loop running")
        while not self._stop_event.is_set():
            self.poll_once()
        logger.debug("Dispatcher loop exiting")

    def _thread_main(self) -> None:
        try:
            self._loop()
        except DeviceDisconnectedError as e:
            logger.error(f"Dispatcher stopped, device lost: {e}")
            self._error = e
        except Exception as e:
            logger.exception("Dispatcher stopped by unexpected error")
            self._error = e
        finally:
            self._put_channel(_STOPPED)

    # --- One iteration ---

    def poll_once(self) -> Optional[Event]:
        """Receive, decode and deliver at most one frame.

        Returns:
            The delivered event, or None if nothing usable arrived

        Raises:
            DeviceDisconnectedError: The device went away
        """
        try:
            packet = self._transport.receive(self._read_timeout_ms)
        except TransientTransportError as e:
            logger.warning(f"Discarding packet after read error: {e}")
            self._stop_event.wait(READ_ERROR_BACKOFF)
            return None

        if not packet:
            return None

        try:
            event = self._protocol.parse_frame(packet)
        except FrameError as e:
            logger.warning(f"Dropping malformed frame: {e}")
            return None

        if event is None:
            logger.debug("Ignoring frame with unknown opcode 0x%02x", packet[0])
            return None

        self._deliver(event)
        return event

    def _deliver(self, event: Event) -> None:
        with self._handler_lock:
            handler = self._handlers.get(type(event))

        if handler is None:
            self._put_channel(event)
            return

        try:
            handler(event)
        except Exception:
            logger.exception(f"Error in handler for {type(event).__name__}")

    def _put_channel(self, item) -> None:
        """Queue an item, discarding the oldest queued event when full."""
        while True:
            try:
                self._channel.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._channel.get_nowait()
                except queue.Empty:
                    continue
                self._dropped_events += 1
                if self._dropped_events % 100 == 1:  # Log periodically
                    logger.warning(f"Event channel full, dropped {self._dropped_events} event(s)")

    def _discard_end_markers(self) -> None:
        """Remove end-of-stream markers left by a previous run, keeping queued events."""
        pending = []
        while True:
            try:
                item = self._channel.get_nowait()
            except queue.Empty:
                break
            if item is not _STOPPED:
                pending.append(item)
        for item in pending:
            self._channel.put_nowait(item)


    # --- Channel consumption ---

    def events(self, timeout: Optional[float] = None) -> Iterator[Event]:
        """Iterate over events that had no registered handler.

        Iteration ends when the dispatcher is not running and every queued
        event has been consumed, so call this after start().

        Args:
            timeout: Stop iterating after this many seconds without an
                event. None waits until the dispatcher stops.

        Raises:
            DeviceDisconnectedError: The dispatcher ended because the
                device went away
        """
        while True:
            # Nothing can arrive once the loop is gone and the channel is drained
            if not self.is_running and self._channel.empty():
                if self._error is not None:
                    raise self._error
                return

            try:
                item = self._channel.get(timeout=timeout)
            except queue.Empty:
                return

            if item is _STOPPED:
                if self._error is not None:
                    raise self._error
                return

            yield item

    def get_event(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Take the next event from the channel, or None on timeout or stop."""
        return next(self.events(timeout=timeout), None)
