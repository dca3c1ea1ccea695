"""Background thread that drains all watch handles and dispatches events."""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Optional

from .config import WatcherConfig
from .event_log import EventLog
from .exceptions import (
    DispatcherStoppedError,
    NativeWatchError,
    WatchHandleClosedError,
    WatcherError,
)
from .models import EventCallback, EventKind, WatchEvent, WatchRegistration
from .paths import relative_depth
from .registry import WatchRegistry, nearest_registered_ancestor

logger = logging.getLogger(__name__)


PropagateFn = Callable[[Path, int, FrozenSet[EventKind], EventCallback], object]
DeregisterFn = Callable[[Path], object]


class BackgroundDispatcher:
    """
    Single control loop that sweeps every registered watch.

    Each sweep polls the handles in path order, records the drained events,
    extends the watches to new subdirectories within their depth budget,
    retracts watches of deleted directories and invokes the callbacks. The
    dispatcher is one-shot: once stopped it cannot be started again.
    """

    def __init__(
        self,
        registry: WatchRegistry,
        event_log: EventLog,
        propagate: PropagateFn,
        deregister: DeregisterFn,
        config: Optional[WatcherConfig] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: Registry of watched directories
            event_log: Log receiving every dispatched event
            propagate: Called as propagate(directory, budget, kinds, callback)
                to register a newly created directory tree
            deregister: Called with a deleted directory that was registered
            config: Watcher configuration
        """
        self.registry = registry
        self.event_log = event_log
        self.config = config or WatcherConfig()
        self._propagate = propagate
        self._deregister = deregister
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.sweep_count = 0

    def ensure_started(self) -> bool:
        """
        Start the dispatcher thread unless it was started before.

        Returns:
            True if the thread was started by this call
        """
        with self._lock:
            if self._thread is not None:
                return False
            self._start_locked()
            return True

    def start(self) -> None:
        """
        Start the dispatcher thread.

        Raises:
            DispatcherStoppedError: If the dispatcher was already started
        """
        with self._lock:
            if self._thread is not None:
                raise DispatcherStoppedError("Dispatcher has already been started")
            self._start_locked()

    def _start_locked(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name="treewatch-dispatcher",
            daemon=True,
        )
        self._thread.start()
        logger.info("Dispatcher started")

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Ask the loop to exit after the current sweep.

        Args:
            wait: Wait for the thread to exit
            timeout: Maximum time to wait (default: config.join_timeout_s)
        """
        self._stop_event.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.join_timeout_s if timeout is None else timeout)

    @property
    def is_running(self) -> bool:
        """Check if the dispatcher thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def was_started(self) -> bool:
        """Check if the dispatcher thread was ever started."""
        return self._thread is not None

    def _run(self) -> None:
        logger.debug("Dispatcher loop started")

        while self.config.dispatcher_enabled and not self._stop_event.is_set():
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Dispatcher sweep failed: {e}")
            self._stop_event.wait(timeout=self.config.sweep_interval)

        logger.info("Dispatcher stopped")

    def sweep(self) -> int:
        """
        Poll every registered watch once and dispatch the pending events.

        Returns:
            Number of events dispatched
        """
        snapshot = self.registry.snapshot()
        dispatched = 0

        for path in sorted(snapshot, key=str):
            registration = snapshot.get(path)
            if registration is None:
                logger.warning(f"No registration in snapshot for {path}")
                continue

            try:
                events = registration.handle.poll()
            except WatchHandleClosedError as e:
                logger.debug(f"Skipping closed watch: {e}")
                continue
            except (NativeWatchError, OSError) as e:
                logger.warning(f"Error polling watch for {path}: {e}")
                continue

            if events is None:
                continue

            try:
                for event in events:
                    try:
                        self._dispatch(registration, event, snapshot)
                    except (WatcherError, OSError) as e:
                        logger.warning(
                            f"Failed to dispatch {event.kind.value} event under {path}: {e}"
                        )
                        continue
                    dispatched += 1
            finally:
                # The handle stays signalled until reset, whatever happened above
                self._reset(registration)

        self.sweep_count += 1
        return dispatched

    def _reset(self, registration: WatchRegistration) -> None:
        try:
            registration.handle.reset()
        except WatchHandleClosedError as e:
            # Deregistered while its events were being dispatched
            logger.debug(f"Not resetting closed watch: {e}")
        except (NativeWatchError, OSError) as e:
            logger.warning(f"Error resetting watch for {registration.path}: {e}")

    def _dispatch(
        self,
        registration: WatchRegistration,
        event: WatchEvent,
        snapshot: Dict[Path, WatchRegistration],
    ) -> None:
        changed = event.resolve(registration.path)

        if event.kind is EventKind.CREATED:
            if changed.is_dir():
                self._propagate_to(changed, registration, snapshot)
            else:
                logger.debug(f"Not registering created path, not a directory: {changed}")
        elif event.kind is EventKind.DELETED:
            if changed in self.registry:
                try:
                    self._deregister(changed)
                except (WatcherError, OSError) as e:
                    logger.warning(f"Failed to deregister deleted directory {changed}: {e}")

        self.event_log.append(changed, event.kind)

        try:
            registration.callback(changed, event)
        except Exception:
            logger.exception(f"Callback failed for {event.kind.value} event on {changed}")

    def _propagate_to(
        self,
        directory: Path,
        registration: WatchRegistration,
        snapshot: Dict[Path, WatchRegistration],
    ) -> None:
        ancestor = nearest_registered_ancestor(directory, snapshot)
        if ancestor is None:
            logger.debug(f"No registered ancestor for created directory {directory}")
            return

        budget = snapshot[ancestor].remaining_depth
        depth = relative_depth(ancestor, directory)
        if depth == 0:
            logger.debug(f"Created directory is already registered: {directory}")
            return
        if depth > budget:
            logger.debug(
                f"Skipping registration of {directory}: {depth} level(s) below "
                f"{ancestor}, past its remaining depth {budget}"
            )
            return

        try:
            self._propagate(
                directory,
                budget - depth,
                registration.event_kinds,
                registration.callback,
            )
        except (WatcherError, OSError) as e:
            logger.warning(f"Failed to register created directory {directory}: {e}")
