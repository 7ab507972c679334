# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Observable value holder shared by the cache and the feature services.

An :class:`ObservableValue` always has a current value that can be read
without locking, plus a list of watchers that are called synchronously with
the new value whenever it changes.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger("umbra.infrastructure.observable")

T = TypeVar("T")


class ObservableValue(Generic[T]):
    """Holds one value and notifies watchers on change."""

    def __init__(self, initial: T, name: str = "value"):
        self._value = initial
        self._name = name
        self._watchers: List[Callable[[T], None]] = []
        self._lock = RLock()

    @property
    def value(self) -> T:
        return self._value

    def set(self, new_value: T) -> bool:
        """Publish *new_value*; returns False when it is identical to the current one."""

        with self._lock:
            if new_value is self._value:
                return False
            self._value = new_value
            watchers = list(self._watchers)

        for watcher in watchers:
            try:
                watcher(new_value)
            except Exception as e:
                logger.error("Watcher of %s failed: %s", self._name, e, exc_info=True)
        return True

    def watch(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that removes it again."""

        with self._lock:
            self._watchers.append(callback)

        def unwatch() -> None:
            with self._lock:
                if callback in self._watchers:
                    self._watchers.remove(callback)

        return unwatch

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    def __repr__(self) -> str:
        return f"ObservableValue({self._name}={self._value!r})"
