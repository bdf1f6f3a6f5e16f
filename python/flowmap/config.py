"""Per-controller dashboard configuration, optionally loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_BASE_URL = "http://localhost:8080"


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class DashboardConfig:
    """Settings for one refresh controller instance.

    The controller takes this snapshot at construction time; later changes to
    the namespace filter go through the controller, never through the config.
    """

    base_url: str = DEFAULT_BASE_URL
    flows_endpoint: str = "/api/cilium/flows"
    matrix_endpoint: str = "/api/cilium/matrix"
    export_endpoint: str = "/api/cilium/export"
    refresh_interval: float = 30.0
    width: float = 800.0
    height: float = 600.0
    request_timeout: float = 10.0
    initial_namespace: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DashboardConfig":
        """Read ``FLOWMAP_*`` variables, falling back to defaults."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            base_url=env.get("FLOWMAP_BASE_URL", defaults.base_url),
            flows_endpoint=env.get("FLOWMAP_FLOWS_ENDPOINT", defaults.flows_endpoint),
            matrix_endpoint=env.get("FLOWMAP_MATRIX_ENDPOINT", defaults.matrix_endpoint),
            export_endpoint=env.get("FLOWMAP_EXPORT_ENDPOINT", defaults.export_endpoint),
            refresh_interval=_env_float(env, "FLOWMAP_REFRESH_INTERVAL", defaults.refresh_interval),
            width=_env_float(env, "FLOWMAP_WIDTH", defaults.width),
            height=_env_float(env, "FLOWMAP_HEIGHT", defaults.height),
            request_timeout=_env_float(env, "FLOWMAP_REQUEST_TIMEOUT", defaults.request_timeout),
            initial_namespace=env.get("FLOWMAP_NAMESPACE") or None,
        )

    def with_overrides(self, **changes) -> "DashboardConfig":
        """Return a copy with the non-``None`` values in ``changes`` applied."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    def validate(self) -> None:
        errors = []
        if self.refresh_interval <= 0:
            errors.append(f"refresh_interval must be positive, got {self.refresh_interval}")
        if self.width <= 0 or self.height <= 0:
            errors.append(f"canvas must be positive, got {self.width}x{self.height}")
        if self.request_timeout <= 0:
            errors.append(f"request_timeout must be positive, got {self.request_timeout}")
        if not self.base_url:
            errors.append("base_url must not be empty")
        if errors:
            raise ValueError("; ".join(errors))


__all__ = ["DEFAULT_BASE_URL", "DashboardConfig"]
