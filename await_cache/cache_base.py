#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Base class for process-lifetime, in-memory caches.

Nothing is persisted: a cache lives as long as the session (or process) that owns it,
and `clear()` is the only way entries go away (no TTL).
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional


@dataclass
class BaseCacheStats:
    """Basic cache statistics tracked automatically by BaseMemoryCache."""
    hit: int = 0
    miss: int = 0
    write: int = 0
    not_modified: int = 0

    def reset(self) -> None:
        self.hit = 0
        self.miss = 0
        self.write = 0
        self.not_modified = 0


class BaseMemoryCache:
    """Base class for a keyed in-memory cache.

    Provides:
    - a Lock around the item map (sessions sharing one instance stay consistent)
    - hit/miss/write stats tracking
    - an explicit clear-all for session boundaries

    Subclasses implement the cache-specific get/put flow on top of
    `_check_item()` / `_set_item()`.
    """

    def __init__(self):
        self._mu = Lock()
        self._items: Dict[str, Any] = {}
        self.stats = BaseCacheStats()

    def _check_item(self, key: str, accept: Optional[Callable[[Any], bool]] = None) -> Optional[Any]:
        """
        Return the item for key (or None) and track hit/miss stats.

        An item rejected by `accept` counts as a miss. Caller must hold self._mu.
        """
        value = self._items.get(key)
        if value is not None and accept is not None and not accept(value):
            value = None
        if value is not None:
            self.stats.hit += 1
        else:
            self.stats.miss += 1
        return value

    def _set_item(self, key: str, value: Any) -> None:
        """Set an item (caller must hold self._mu). Increments stats.write."""
        self._items[key] = value
        self.stats.write += 1

    def clear(self) -> None:
        """Drop every entry.

        Affects every session that shares this instance.
        """
        with self._mu:
            self._items.clear()
            self.stats.reset()

    def __len__(self) -> int:
        with self._mu:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._mu:
            return key in self._items
