"""
webcase - Harness Configuration.

Provides :class:`HarnessConfig`, a small dot-notation settings object
holding the harness defaults (client base URL, session cookie name,
fixture options) with per-test overrides and opt-in ``.env`` loading.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from dotenv import dotenv_values

logger = logging.getLogger("webcase.config")


DEFAULTS: Dict[str, Any] = {
    "client": {
        "base_url": "http://testserver",
        "follow_redirects": False,
    },
    "session": {
        "cookie_name": "SESSID",
    },
    "fixtures": {
        "default_manager": None,  # None: the ORM registry's own default
        "strict_references": False,
    },
}


class HarnessConfig:
    """
    Harness settings with dot-notation access.

    Overrides are deep-merged over :data:`DEFAULTS` without mutating them.

    Usage::

        cfg = HarnessConfig(fixtures={"strict_references": True})
        assert cfg.get("fixtures.strict_references") is True
        assert cfg["session.cookie_name"] == "SESSID"
    """

    __slots__ = ("_data",)

    def __init__(self, **overrides: Any):
        self._data = _deep_merge(copy.deepcopy(DEFAULTS), overrides)

    @classmethod
    def from_env(
        cls,
        path: Union[str, Path] = ".env.test",
        prefix: str = "WEBCASE_",
        **overrides: Any,
    ) -> "HarnessConfig":
        """
        Build a config from a dotenv file.

        ``WEBCASE_FIXTURES__STRICT_REFERENCES=true`` becomes
        ``fixtures.strict_references = True``.  Keyword overrides win over
        values read from the file.  A missing file yields the defaults.
        """
        cfg = cls()
        values = dotenv_values(path)
        for key, raw in values.items():
            if not key.startswith(prefix) or raw is None:
                continue
            dot_key = key[len(prefix):].lower().replace("__", ".")
            cfg.set(dot_key, _coerce(raw))
        if values:
            logger.debug("Loaded %d setting(s) from %s", len(values), path)
        _deep_merge(cfg._data, overrides)
        return cfg

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        ref: Any = self._data
        for part in key.split("."):
            if isinstance(ref, dict) and part in ref:
                ref = ref[part]
            else:
                return default
        return ref

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        ref = self._data
        for part in parts[:-1]:
            ref = ref.setdefault(part, {})
        ref[parts[-1]] = value

    def has(self, key: str) -> bool:
        return self.get(key, _SENTINEL) is not _SENTINEL

    def to_dict(self) -> dict:
        return copy.deepcopy(self._data)

    @contextmanager
    def override(self, **values: Any) -> Iterator["HarnessConfig"]:
        """
        Temporarily override settings, restoring them on exit.

        Keys use ``__`` as the separator::

            with cfg.override(fixtures__strict_references=True):
                ...
        """
        saved = copy.deepcopy(self._data)
        for key, value in values.items():
            self.set(key.lower().replace("__", "."), value)
        try:
            yield self
        finally:
            self._data = saved

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _SENTINEL)
        if value is _SENTINEL:
            raise KeyError(key)
        return value

    def __repr__(self) -> str:
        return f"<HarnessConfig keys={list(self._data)}>"


_SENTINEL = object()


def _deep_merge(base: dict, overrides: dict) -> dict:
    """Recursively merge *overrides* into *base* (mutates base)."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in ("true", "yes", "on", "1"):
        return True
    if lowered in ("false", "no", "off", "0"):
        return False
    try:
        return int(raw)
    except ValueError:
        return raw
