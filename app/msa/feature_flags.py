"""
Feature flags.

Flags are resolved from three layers, later layers winning key by key:

1. compiled-in defaults (every flag present),
2. the preset for the current ENV mode (only ``development`` has one),
3. explicit ``FEATURE_*`` environment variables.

The merged set is computed once per resolver and reused until ``reset()``.
Each Flask app owns one resolver in ``app.extensions["feature_flags"]``; the
module-level helpers below operate on the current app's resolver.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Mapping
from functools import wraps
from typing import Any

from flask import Flask, abort, current_app

from app.msa.constants import (
    DEFAULT_FEATURE_FLAGS,
    DEVELOPMENT_FEATURE_FLAGS,
    FEATURE_FLAG_ENV_VARS,
    FEATURE_FLAG_NAMES,
)

logger = logging.getLogger(__name__)


class UnknownFlagError(KeyError):
    """A flag name outside the enumerated set was used."""


class FeatureFlags(Mapping[str, bool]):
    """Immutable snapshot of resolved flags. Unknown names raise UnknownFlagError."""

    def __init__(self, values: Mapping[str, bool]) -> None:
        self._values = dict(values)

    def __getitem__(self, name: str) -> bool:
        try:
            return self._values[name]
        except KeyError:
            raise UnknownFlagError(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        enabled = [k for k, v in self._values.items() if v]
        return f"FeatureFlags(enabled={enabled})"


def parse_flag_value(raw: str) -> bool:
    # Only the exact string "true" enables a flag.
    return raw == "true"


def merge_flag_layers(defaults: Mapping[str, bool], *layers: Mapping[str, bool]) -> dict[str, bool]:
    """Shallow-merge layers over the defaults; layers may only touch known keys."""
    merged = dict(defaults)
    for layer in layers:
        for name, value in layer.items():
            if name not in merged:
                raise UnknownFlagError(name)
            merged[name] = bool(value)
    return merged


class FeatureFlagResolver:
    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        defaults: Mapping[str, bool] = DEFAULT_FEATURE_FLAGS,
        presets: Mapping[str, Mapping[str, bool]] | None = None,
        env_vars: Mapping[str, str] = FEATURE_FLAG_ENV_VARS,
        mode_var: str = "ENV",
        mode: str | None = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self.defaults = dict(defaults)
        self.presets = {"development": DEVELOPMENT_FEATURE_FLAGS} if presets is None else dict(presets)
        self.env_vars = dict(env_vars)
        self.mode_var = mode_var
        self._mode = mode
        self._cached: FeatureFlags | None = None

        for name in self.env_vars:
            if name not in self.defaults:
                raise UnknownFlagError(name)
        for preset in self.presets.values():
            merge_flag_layers(self.defaults, preset)

    @property
    def mode(self) -> str:
        raw = self._mode if self._mode is not None else self.environ.get(self.mode_var)
        return (raw or "").strip().lower()

    def _mode_layer(self) -> Mapping[str, bool]:
        return self.presets.get(self.mode, {})

    def _env_layer(self) -> dict[str, bool]:
        layer: dict[str, bool] = {}
        for name, var in self.env_vars.items():
            raw = self.environ.get(var)
            if raw is not None:
                layer[name] = parse_flag_value(raw)
        return layer

    def get_flags(self) -> FeatureFlags:
        if self._cached is None:
            self._cached = FeatureFlags(merge_flag_layers(self.defaults, self._mode_layer(), self._env_layer()))
            if self.mode == "development":
                logger.info("Feature flags loaded: %s", dict(self._cached))
        return self._cached

    def is_enabled(self, name: str) -> bool:
        return self.get_flags()[name]

    def reset(self) -> None:
        self._cached = None

    def override(self, partial: Mapping[str, bool]) -> FeatureFlags:
        """Test hook: replace the cached set with the current one plus ``partial``."""
        self._cached = FeatureFlags(merge_flag_layers(self.get_flags(), partial))
        return self._cached


def init_feature_flags(app: Flask) -> FeatureFlagResolver:
    # mode is the app's ENV setting, which defaults to development
    resolver = FeatureFlagResolver(mode=app.config.get("ENV"))
    app.extensions["feature_flags"] = resolver

    @app.context_processor
    def _inject_feature_flags() -> dict:
        return {"feature_enabled": is_feature_enabled}

    return resolver


def feature_flags() -> FeatureFlagResolver:
    return current_app.extensions["feature_flags"]


def get_flags() -> FeatureFlags:
    return feature_flags().get_flags()


def is_feature_enabled(name: str) -> bool:
    return feature_flags().is_enabled(name)


def reset_flags() -> None:
    feature_flags().reset()


def override_flags(partial: Mapping[str, bool]) -> FeatureFlags:
    return feature_flags().override(partial)


def require_feature(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Route decorator: 404 while the feature is disabled."""
    if name not in FEATURE_FLAG_NAMES:
        raise UnknownFlagError(name)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            if not is_feature_enabled(name):
                abort(404)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
