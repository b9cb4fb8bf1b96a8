"""
Single-Flight Initialization
============================

Guards lazy creation of a process-wide external resource (for example an AI
client) so that at most one initialization is in flight at any time.

The guard is an explicit state machine owned by the call site:

    IDLE -> INITIALIZING -> READY
                         -> FAILED -> (reset) -> IDLE

Concurrent callers arriving while INITIALIZING wait for the in-flight attempt
instead of starting their own.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .logging import get_logger_for_component

T = TypeVar("T")


class InitState(str, Enum):
    """Lifecycle of a lazily initialized resource."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class SingleFlightInitializer(Generic[T]):
    """Async single-flight wrapper around a resource factory."""

    def __init__(self, name: str, factory: Callable[[], Awaitable[T]]):
        """Initialize the guard.

        Args:
            name: Resource name used in log messages
            factory: Coroutine function creating the resource
        """
        self.name = name
        self._factory = factory
        self._state = InitState.IDLE
        self._resource: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._lock = asyncio.Lock()
        self.logger = get_logger_for_component("init_guard")

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._error

    async def get(self) -> T:
        """Return the resource, creating it on first use.

        Raises:
            Exception: Whatever the factory raised; the guard stays FAILED
                until ``reset`` is called.
        """
        if self._state == InitState.READY:
            return self._resource

        async with self._lock:
            # Another caller may have finished while we waited on the lock
            if self._state == InitState.READY:
                return self._resource
            if self._state == InitState.FAILED:
                raise self._error

            self._state = InitState.INITIALIZING
            self.logger.debug(f"Initializing {self.name}")
            try:
                resource = await self._factory()
            except Exception as e:
                self._state = InitState.FAILED
                self._error = e
                self.logger.warning(f"Initialization of {self.name} failed: {e}")
                raise

            self._resource = resource
            self._state = InitState.READY
            self.logger.info(f"{self.name} initialized")
            return resource

    async def reset(self) -> None:
        """Drop the resource (or failure) so the next ``get`` starts over."""
        async with self._lock:
            self._resource = None
            self._error = None
            self._state = InitState.IDLE
