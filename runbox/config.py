"""Runner settings loaded from YAML with environment overrides."""

from __future__ import annotations

import dataclasses
import importlib
import importlib.util
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from runbox.errors import ConfigError

DEFAULT_CONFIG_PATH = "config/runner.yaml"
CONFIG_ENV_VAR = "RUNBOX_CONFIG"

_ENV_OVERRIDES = {
    "image_reference": "RUNBOX_IMAGE_REFERENCE",
    "build_context": "RUNBOX_BUILD_CONTEXT",
    "harness_path": "RUNBOX_HARNESS_PATH",
    "workdir": "RUNBOX_WORKDIR",
    "memory_limit_bytes": "RUNBOX_MEMORY_LIMIT_BYTES",
    "platform": "RUNBOX_PLATFORM",
    "wait_timeout_seconds": "RUNBOX_WAIT_TIMEOUT_SECONDS",
}


@dataclass(frozen=True)
class RunnerSettings:
    image_reference: str = "runner"
    build_context: str = "runner"
    harness_path: str = "runner/timer.sh"
    harness_name: str = "timer.sh"
    workdir: str = "/code"
    memory_limit_bytes: int = 10_000_000
    container_name_prefix: str = "runner"
    platform: Optional[str] = None
    wait_timeout_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.image_reference:
            raise ConfigError("image_reference must not be empty")
        if not self.harness_name:
            raise ConfigError("harness_name must not be empty")
        if not self.workdir.startswith("/"):
            raise ConfigError("workdir must be an absolute container path")
        if self.memory_limit_bytes <= 0:
            raise ConfigError("memory_limit_bytes must be > 0")
        if self.wait_timeout_seconds is not None and self.wait_timeout_seconds <= 0:
            raise ConfigError("wait_timeout_seconds must be > 0")

    def with_overrides(self, **overrides: Any) -> RunnerSettings:
        return dataclasses.replace(self, **overrides)


def load_settings(
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> RunnerSettings:
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    values = _load_file(path)
    for name, var in _ENV_OVERRIDES.items():
        if var in env and env[var] != "":
            values[name] = env[var]
    return _build(values, source=str(path))


def _load_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    yaml_spec = importlib.util.find_spec("yaml")
    if yaml_spec is None:
        raise RuntimeError("PyYAML is required to load runner settings.")
    yaml = importlib.import_module("yaml")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}")
    runner = data.get("runner", {}) or {}
    if not isinstance(runner, dict):
        raise ConfigError(f"Expected 'runner' to be a mapping in {path}")
    return dict(runner)


def _build(values: dict[str, Any], source: str) -> RunnerSettings:
    fields = {field.name: field for field in dataclasses.fields(RunnerSettings)}
    unknown = sorted(set(values) - set(fields))
    if unknown:
        raise ConfigError(f"Unknown runner settings in {source}: {', '.join(unknown)}")
    try:
        if "memory_limit_bytes" in values:
            values["memory_limit_bytes"] = int(values["memory_limit_bytes"])
        if values.get("wait_timeout_seconds") is not None:
            values["wait_timeout_seconds"] = float(values["wait_timeout_seconds"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid runner setting in {source}: {exc}") from exc
    return RunnerSettings(**values)
