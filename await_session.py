#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Per-run session: config, transport, cache, and the clock/sleep used by every loop.

One AwaitSession is built per awaited run and passed explicitly to every component, so
independent sessions (or tests) never share hidden module state. Sessions may share a
ConditionalCache instance; fingerprints include the run id, but `cache.clear()` then
affects all of them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from await_cache import ConditionalCache
from await_config import ActionConfig, ConfigError
from await_github import GitHubAPIClient


@dataclass
class AwaitSession:
    config: ActionConfig
    api: GitHubAPIClient
    cache: ConditionalCache = field(default_factory=ConditionalCache)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def create(cls, config: ActionConfig, *, cache: Optional[ConditionalCache] = None) -> "AwaitSession":
        """Build a session with a real GitHubAPIClient.

        Raises:
            ConfigError: no token given and none found in the local GitHub config files
        """
        try:
            api = GitHubAPIClient(token=config.token, require_auth=True)
        except RuntimeError as e:
            raise ConfigError(str(e)) from e
        return cls(config=config, api=api, cache=cache if cache is not None else ConditionalCache())

    @property
    def owner(self) -> str:
        return self.config.owner

    @property
    def repo(self) -> str:
        return self.config.repo

    def elapsed_ms(self, start: float) -> float:
        """Milliseconds since `start` (a value previously returned by self.clock())."""
        return (self.clock() - start) * 1000.0

    def sleep_ms(self, ms: float) -> None:
        self.sleep(float(ms) / 1000.0)
