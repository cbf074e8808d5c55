"""Client configuration for poisync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from poisync._constants import BASE_URL, MAX_RESULTS_PER_CATEGORY, SUPPORTED_CATEGORIES


def _env_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


@dataclasses.dataclass(frozen=True)
class PoiSyncConfig:
    """Library configuration.

    Parameters
    ----------
    api_key : str
        Geoapify API key, sent as the ``apiKey`` query parameter.
    base_url : str
        Places API base URL (without the ``/places`` endpoint).
    max_results_per_category : int
        Upper bound on the ``limit`` parameter of each per-category query.
    category_delay : float
        Seconds to pause between two per-category queries.  Categories are
        always fetched one after the other; the pause keeps the request rate
        under the provider's throttling limits.  ``0`` disables it.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    debounce_delay : float
        Seconds a qualifying location observation waits before it triggers
        a fetch.  A later qualifying observation restarts the wait.
    supported_categories : tuple of str
        Category roots accepted from the remote API.  A place is kept when
        one of its categories equals a root or is a sub-category of it
        (``tourism.attraction.artwork`` matches ``tourism``).
    storage_path : str or None
        Path of the JSON file used by :class:`~poisync.persistence.JsonFileDurableStore`.
        ``None`` keeps state in memory only.
    """

    api_key: str = ""
    base_url: str = BASE_URL
    max_results_per_category: int = MAX_RESULTS_PER_CATEGORY
    category_delay: float = 0.1
    request_timeout: float = 10.0
    debounce_delay: float = 1.0
    supported_categories: tuple[str, ...] = SUPPORTED_CATEGORIES
    storage_path: str | None = None

    def __post_init__(self) -> None:
        if self.max_results_per_category <= 0:
            raise ValueError("max_results_per_category must be positive")
        if self.debounce_delay < 0:
            raise ValueError("debounce_delay must not be negative")
        if self.category_delay < 0:
            raise ValueError("category_delay must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> PoiSyncConfig:
        """Create configuration from environment variables.

        Reads ``POISYNC_API_KEY`` (falling back to ``GEOAPIFY_API_KEY``) and
        the optional ``POISYNC_*`` variables.  Explicit keyword arguments
        override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        api_key = env.get("POISYNC_API_KEY") or env.get("GEOAPIFY_API_KEY")
        if api_key is not None:
            config_kwargs["api_key"] = api_key

        _ENV_STR_MAP = {
            "POISYNC_BASE_URL": "base_url",
            "POISYNC_STORAGE_PATH": "storage_path",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        max_results_env = env.get("POISYNC_MAX_RESULTS")
        if max_results_env is not None:
            config_kwargs["max_results_per_category"] = int(max_results_env)

        _ENV_FLOAT_MAP = {
            "POISYNC_CATEGORY_DELAY": ("category_delay", 0.1),
            "POISYNC_REQUEST_TIMEOUT": ("request_timeout", 10.0),
            "POISYNC_DEBOUNCE_DELAY": ("debounce_delay", 1.0),
        }
        for env_key, (field_name, default) in _ENV_FLOAT_MAP.items():
            if env_key in env:
                config_kwargs[field_name] = _env_float(env.get(env_key), default)

        categories_env = env.get("POISYNC_SUPPORTED_CATEGORIES")
        if categories_env:
            config_kwargs["supported_categories"] = tuple(
                part.strip() for part in categories_env.split(",") if part.strip()
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
