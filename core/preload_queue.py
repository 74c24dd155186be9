# core/preload_queue.py

import asyncio
import importlib
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Set, Union

from utils.image_utils import decode_image

logger = logging.getLogger(__name__)

LoaderFn = Callable[[], Awaitable[Any]]


class PreloadPriority(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def rank(self) -> int:
        return PRIORITY_ORDER[self]


PRIORITY_ORDER = {
    PreloadPriority.HIGH: 0,
    PreloadPriority.MEDIUM: 1,
    PreloadPriority.LOW: 2,
}


class LoadFailure(Exception):
    """A preload loader raised; carried by the rejected future"""

    def __init__(self, key: str, cause: BaseException):
        super().__init__(f"Failed to preload {key}: {cause}")
        self.key = key
        self.cause = cause


@dataclass
class PreloadItem:
    """One queued preload and the future its caller is waiting on"""
    type: str  # image | component
    key: str
    priority: PreloadPriority
    future: asyncio.Future
    loader_fn: Optional[LoaderFn] = None


class PillowImageLoader:
    """
    Decode an image fully, off the event loop.

    Accepts paths and file:// URLs only.
    """

    async def __call__(self, src: str):
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, decode_image, src)


def import_module_loader(module_name: str) -> LoaderFn:
    """Component loader that imports a Python module in the executor"""
    async def load():
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, importlib.import_module, module_name)
    return load


class ResourcePreloader:
    """
    Deduplicated, priority-ordered, single-flight preload queue.

    Exactly one loader runs at a time. New items are inserted ahead of the
    first waiting item with a lower priority, so equal priorities keep
    arrival order and the item already loading is never preempted.

    Must be used from within a running event loop.
    """

    def __init__(self, image_loader: Callable[[str], Awaitable[Any]] = None):
        self.image_loader = image_loader or PillowImageLoader()
        self._preloaded: Set[str] = set()
        self._queue: List[PreloadItem] = []
        self._active: Optional[PreloadItem] = None
        self._worker: Optional[asyncio.Task] = None

    # Public API

    def preload_image(self, src: str,
                      priority: Union[PreloadPriority, str] = PreloadPriority.MEDIUM) -> asyncio.Future:
        """Queue an image; the future resolves once it has been decoded"""
        return self._request('image', src, priority)

    def preload_component(self, loader_fn: LoaderFn, component_id: str,
                          priority: Union[PreloadPriority, str] = PreloadPriority.MEDIUM) -> asyncio.Future:
        """Queue an arbitrary async loader, deduplicated by component_id"""
        if not callable(loader_fn):
            raise TypeError("loader_fn must be callable")
        return self._request('component', component_id, priority, loader_fn)

    def preload_critical_components(self, loaders: Dict[str, LoaderFn],
                                    priority: Union[PreloadPriority, str] = PreloadPriority.HIGH) -> List[asyncio.Future]:
        """
        Start preloading a batch of components without waiting for them.

        Failures are logged and never propagate to the caller.
        """
        futures = []
        for component_id, loader_fn in loaders.items():
            future = self.preload_component(loader_fn, component_id, priority)
            future.add_done_callback(_warn_on_failure)
            futures.append(future)
        return futures

    def is_preloaded(self, key: str) -> bool:
        return key in self._preloaded

    def preloaded_keys(self) -> FrozenSet[str]:
        return frozenset(self._preloaded)

    def clear_cache(self):
        """
        Forget preloaded keys and drop items that have not started.

        The item currently loading is not aborted. Futures of dropped items
        are left unsettled.
        """
        dropped = len(self._queue)
        self._preloaded.clear()
        self._queue.clear()
        if dropped:
            logger.info("Preload cache cleared, %d pending item(s) dropped", dropped)

    async def join(self):
        """Wait until the queue is empty and nothing is loading"""
        while self._worker is not None and not self._worker.done():
            await self._worker

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def active_key(self) -> Optional[str]:
        return self._active.key if self._active else None

    # Queue internals

    def _request(self, item_type: str, key: str,
                 priority: Union[PreloadPriority, str],
                 loader_fn: LoaderFn = None) -> asyncio.Future:
        priority = PreloadPriority(priority)
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        if key in self._preloaded:
            future.set_result(None)
            return future

        item = PreloadItem(
            type=item_type,
            key=key,
            priority=priority,
            future=future,
            loader_fn=loader_fn,
        )
        self._add_to_queue(item)
        return future

    def _add_to_queue(self, item: PreloadItem):
        insert_index = len(self._queue)
        for index, queued in enumerate(self._queue):
            if queued.priority.rank > item.priority.rank:
                insert_index = index
                break

        self._queue.insert(insert_index, item)
        logger.debug("Queued %s %s (%s) at position %d",
                     item.type, item.key, item.priority.value, insert_index)

        if not self.is_processing:
            self._worker = asyncio.get_running_loop().create_task(self._process_queue())

    async def _process_queue(self):
        while self._queue:
            item = self._queue.pop(0)
            self._active = item
            try:
                if item.key in self._preloaded:
                    logger.debug("%s preloaded while queued, skipping loader", item.key)
                else:
                    await self._load(item)
                    self._preloaded.add(item.key)
            except asyncio.CancelledError as e:
                if asyncio.current_task().cancelling():
                    # The worker itself is being cancelled
                    item.future.cancel()
                    raise
                self._reject(item, e)
            except Exception as e:
                self._reject(item, e)
            else:
                logger.debug("Preloaded %s", item.key)
                _settle(item.future)
            finally:
                self._active = None

    def _reject(self, item: PreloadItem, error: BaseException):
        logger.warning("Preload failed for %s: %r", item.key, error)
        failure = LoadFailure(item.key, error)
        failure.__cause__ = error
        _settle(item.future, failure)

    async def _load(self, item: PreloadItem):
        if item.type == 'image':
            await self.image_loader(item.key)
        else:
            result = item.loader_fn()
            if inspect.isawaitable(result):
                await result


def _settle(future: asyncio.Future, error: BaseException = None):
    # Callers may have cancelled their future
    if future.done():
        return
    if error is None:
        future.set_result(None)
    else:
        future.set_exception(error)


def _warn_on_failure(future: asyncio.Future):
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning("Failed to preload component: %s", error)
