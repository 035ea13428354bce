"""
Filesystem change notification for hot reload.

Watches the directories that hold the sidecar configuration and the TLS
material. Directories rather than files are watched because Kubernetes
updates mounted ConfigMaps and Secrets by swapping a symlink inside the
mount directory, never by writing the files in place.

watchdog delivers events on its observer thread; they are handed to the
event loop with ``call_soon_threadsafe`` and consumed as an async stream.
"""

import asyncio
import contextlib
import logging
import os
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from sidecar_injector.constants import (
    DEFAULT_WATCHER_LIVENESS_INTERVAL,
    DEFAULT_WATCHER_RESTART_DELAY,
)
from sidecar_injector.errors import WatcherError

logger = logging.getLogger(__name__)


class FileEventKind(str, Enum):
    """Kinds of events emitted by the watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    ERROR = "error"


@dataclass(frozen=True)
class FileEvent:
    """One filesystem change (or a watcher failure)."""

    kind: FileEventKind
    path: str = ""
    error: WatcherError | None = None

    @property
    def triggers_reload(self) -> bool:
        return self.kind in (FileEventKind.CREATED, FileEventKind.MODIFIED)


class _ForwardingHandler(FileSystemEventHandler):
    """Runs on the observer thread; forwards events to the event loop queue."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        queue: "asyncio.Queue[FileEvent | None]",
    ):
        super().__init__()
        self._loop = loop
        self._queue = queue

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(FileEventKind.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward(FileEventKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(FileEventKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # The ..data symlink swap of a mounted volume arrives as a rename
        self._forward(FileEventKind.CREATED, event.dest_path)

    def _forward(self, kind: FileEventKind, path: str | bytes) -> None:
        self._loop.call_soon_threadsafe(
            self._queue.put_nowait, FileEvent(kind, os.fsdecode(path))
        )


class FileWatcher:
    """
    Async stream of change events for the directories containing ``paths``.

    A failure of the watch backend (the observer failing to start, or its
    thread dying) is emitted as an ``ERROR`` event and the watch is restarted
    after ``restart_delay`` seconds, so consumers never lose the stream
    because of a transient backend problem.
    """

    def __init__(
        self,
        paths: Iterable[str],
        restart_delay: float = DEFAULT_WATCHER_RESTART_DELAY,
        liveness_interval: float = DEFAULT_WATCHER_LIVENESS_INTERVAL,
        observer_factory: Callable[[], Any] = Observer,
    ):
        """
        Initialize file watcher.

        Args:
            paths: Files whose parent directories are watched
            restart_delay: Seconds to wait before restarting a failed watch
            liveness_interval: How often an idle stream checks the observer thread
            observer_factory: Builds the watchdog observer
        """
        self.directories = sorted(
            {os.path.dirname(os.path.abspath(path)) for path in paths}
        )
        self.restart_delay = restart_delay
        self.liveness_interval = liveness_interval
        self.observer_factory = observer_factory
        self._stop = asyncio.Event()
        self._queue: asyncio.Queue[FileEvent | None] | None = None

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def _start_observer(self, handler: FileSystemEventHandler) -> Any:
        observer = self.observer_factory()
        for directory in self.directories:
            observer.schedule(handler, directory, recursive=False)
        observer.start()
        return observer

    async def _wait_before_restart(self) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop.wait(), self.restart_delay)

    async def events(self) -> AsyncIterator[FileEvent]:
        """Yield change events until ``close()`` is called."""
        logger.info(f"Watching for changes in: {', '.join(self.directories)}")
        loop = asyncio.get_running_loop()

        while not self._stop.is_set():
            self._queue = queue = asyncio.Queue()
            try:
                observer = self._start_observer(_ForwardingHandler(loop, queue))
            except Exception as e:
                yield FileEvent(
                    FileEventKind.ERROR,
                    error=WatcherError(f"filesystem watch failed: {e}", cause=e),
                )
                await self._wait_before_restart()
                continue

            try:
                while not self._stop.is_set():
                    try:
                        event = await asyncio.wait_for(
                            queue.get(), self.liveness_interval
                        )
                    except TimeoutError:
                        if observer.is_alive():
                            continue
                        yield FileEvent(
                            FileEventKind.ERROR,
                            error=WatcherError("filesystem observer stopped"),
                        )
                        break
                    # None only wakes the loop up after close()
                    if event is not None:
                        yield event
            finally:
                observer.stop()
                observer.join(timeout=self.liveness_interval)
                self._queue = None

            if not self._stop.is_set():
                await self._wait_before_restart()

    def close(self) -> None:
        """Stop watching; the event stream ends on its next iteration."""
        if self._stop.is_set():
            return
        logger.info("Closing filesystem watcher")
        self._stop.set()
        if self._queue is not None:
            self._queue.put_nowait(None)
