# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Scheduler Configuration for Paced Queue

This module provides the configuration dataclass for a single queue:
inter-step delay, end-of-queue policy, concurrency cap, completion
callback and initial pause state.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from ..exceptions import ConfigurationError, InvalidArgumentError
from ..protocols.processor import CompletionCallback

logger = logging.getLogger(__name__)

UNBOUNDED = -1
"""Sentinel for ``max_concurrent`` meaning no cap on in-flight invocations."""

DEFAULT_DELAY = 0.1

# Alternate spellings accepted by QueueConfig.from_mapping
OPTION_ALIASES: dict[str, str] = {
    "maxConcurrent": "max_concurrent",
    "onComplete": "on_complete",
    "complete": "on_complete",
    "startPaused": "start_paused",
    "paused": "start_paused",
}


@dataclass
class QueueConfig:
    """
    Configuration for one paced queue.

    Durations are in seconds. The snapshot is read when the scheduler is
    built; changing fields on a live scheduler's config afterwards is not
    supported.
    """

    name: str = "default"
    """Queue name used in log lines and metric labels."""

    delay: float = DEFAULT_DELAY
    """Seconds between dispatching one item and considering the next."""

    persistent: bool = False
    """Stay armed when the buffer empties instead of signalling completion."""

    max_concurrent: int | None = UNBOUNDED
    """Cap on in-flight processor invocations; -1 or None means unbounded."""

    on_complete: CompletionCallback | None = None
    """Called once per drain of a non-persistent queue."""

    start_paused: bool = False
    """Create the scheduler in the paused state."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_concurrent is None:
            self.max_concurrent = UNBOUNDED
        if isinstance(self.delay, bool) or not isinstance(self.delay, (int, float)):
            raise ConfigurationError(f"delay must be a number, got {self.delay!r}")
        if self.delay < 0:
            raise ConfigurationError("delay must be non-negative")
        if isinstance(self.max_concurrent, bool) or not isinstance(
            self.max_concurrent, int
        ):
            raise ConfigurationError(
                f"max_concurrent must be an integer, got {self.max_concurrent!r}"
            )
        if self.max_concurrent != UNBOUNDED and self.max_concurrent < 1:
            raise ConfigurationError(
                "max_concurrent must be -1 (unbounded) or at least 1"
            )
        if self.on_complete is not None and not callable(self.on_complete):
            raise InvalidArgumentError(
                "on_complete must be callable", argument="on_complete"
            )

    @property
    def is_bounded(self) -> bool:
        """Whether a positive concurrency cap applies."""
        return self.max_concurrent != UNBOUNDED

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "QueueConfig":
        """
        Build a config from a plain options mapping.

        Alternate spellings (``maxConcurrent``, ``onComplete``, ``complete``,
        ``startPaused``, ``paused``) are folded onto the field names.
        Unrecognized keys are ignored; omitted keys take defaults.

        Args:
            options: Option names to values

        Returns:
            A validated QueueConfig
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                logger.debug(f"Ignoring unrecognized queue option {key!r}")
        return cls(**kwargs)

    @classmethod
    def coerce(
        cls, config: "QueueConfig | Mapping[str, Any] | None", **overrides: Any
    ) -> "QueueConfig":
        """
        Normalize the ``config`` argument accepted by the scheduler.

        Args:
            config: A QueueConfig, an options mapping, or None for defaults
            **overrides: Options applied on top of ``config``

        Raises:
            ConfigurationError: If ``config`` is of an unsupported type
        """
        if config is None:
            options: dict[str, Any] = {}
        elif isinstance(config, QueueConfig):
            if not overrides:
                return config
            options = {f.name: getattr(config, f.name) for f in fields(cls)}
        elif isinstance(config, Mapping):
            options = dict(config)
        else:
            raise ConfigurationError(
                f"config must be a QueueConfig or a mapping, got {type(config).__name__}"
            )
        options.update(overrides)
        return cls.from_mapping(options)


__all__ = [
    "DEFAULT_DELAY",
    "OPTION_ALIASES",
    "UNBOUNDED",
    "QueueConfig",
]
