"""Layered configuration loader and CLI for the football news pipeline."""
from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Sequence

import tomli_w
from dotenv import dotenv_values
from pydantic import ValidationError

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Py <3.11
    import tomli as tomllib  # type: ignore[no-redef]

from futnews.config_schema import Config, DEFAULT_CONFIG, iter_field_docs

DEFAULT_ENV_PREFIX = "FUTNEWS"
DEFAULT_CONFIG_FILENAME = "config.toml"
DEFAULT_ENV_FILENAME = ".env"

LAYER_DEFAULTS = "defaults"
LAYER_FILE = "file"
LAYER_ENV_FILE = "env-file"
LAYER_ENV = "env"
LAYER_CLI = "cli"


@dataclass(frozen=True)
class ConfigValueOrigin:
    """Where a single configuration value came from."""

    layer: str
    source: str
    env_var: str | None = None

    def render(self) -> str:
        details = [item for item in (self.env_var, self.source) if item]
        if details:
            return f"{self.layer} ({', '.join(details)})"
        return self.layer


@dataclass
class ConfigMetadata:
    """Metadata returned alongside the loaded configuration."""

    config_path: Path
    env_path: Optional[Path]
    env_prefix: str
    provenance: Dict[str, ConfigValueOrigin] = field(default_factory=dict)
    load_order: tuple[str, ...] = (LAYER_DEFAULTS, LAYER_FILE, LAYER_ENV_FILE, LAYER_ENV)

    def describe_sources(self) -> list[str]:
        sources = [
            "defaults: built into futnews.config_schema",
            f"config file: {self.config_path}",
            f".env file: {self.env_path}" if self.env_path else ".env file: not found",
            f"environment prefix: {self.env_prefix}__*",
        ]
        return sources


class ConfigError(RuntimeError):
    """Raised when configuration loading or validation fails."""


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _default_paths() -> tuple[Path, Path]:
    root = _project_root()
    return root / DEFAULT_CONFIG_FILENAME, root / DEFAULT_ENV_FILENAME


def _is_secret(path: str) -> bool:
    lowered = path.lower()
    return any(token in lowered for token in ("password", "secret", "token"))


def _merge_layer(
    target: MutableMapping[str, Any],
    updates: Mapping[str, Any],
    provenance: Dict[str, ConfigValueOrigin],
    *,
    origin: ConfigValueOrigin,
    prefix: str = "",
) -> None:
    for key, value in updates.items():
        composed = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, MutableMapping):
                existing = {}
                target[key] = existing
            _merge_layer(existing, value, provenance, origin=origin, prefix=composed)
        else:
            target[key] = value
            provenance[composed] = origin


def _coerce_text(value: str) -> Any:
    """Interpret an environment/CLI string as the closest TOML scalar."""

    text = value.strip()
    if not text:
        return ""
    lowered = text.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        return float(text)
    except ValueError:
        pass
    if text[0] + text[-1] in ("[]", "{}"):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


def _parse_kv_override(raw_key: str, raw_value: str, prefix: str) -> tuple[str, Any]:
    if not raw_key.startswith(prefix + "__"):
        raise ConfigError(
            f"Environment override '{raw_key}' does not start with prefix {prefix}__"
        )
    segments = [segment for segment in raw_key[len(prefix) + 2 :].split("__") if segment]
    if not segments:
        raise ConfigError(f"Environment override '{raw_key}' is missing key segments")
    return ".".join(segment.lower() for segment in segments), _coerce_text(raw_value)


def _assign_path(target: MutableMapping[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    current: MutableMapping[str, Any] = target
    for segment in parents:
        next_value = current.get(segment)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            current[segment] = next_value
        current = next_value
    current[leaf] = value


def _to_toml_payload(value: Any) -> Any:
    if isinstance(value, Config):
        return _to_toml_payload(value.model_dump(mode="python"))
    if isinstance(value, Mapping):
        return {
            str(key): _to_toml_payload(val) for key, val in value.items() if val is not None
        }
    if isinstance(value, (list, tuple)):
        return [_to_toml_payload(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    return value


def _load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _detect_env_path(config_path: Path) -> Path:
    env_candidate = config_path.parent / DEFAULT_ENV_FILENAME
    if env_candidate.exists():
        return env_candidate
    default_env_path = _default_paths()[1]
    if default_env_path.exists():
        return default_env_path
    return env_candidate


def _format_validation_error(
    error: ValidationError,
    provenance: Mapping[str, ConfigValueOrigin],
) -> ConfigError:
    messages: list[str] = []
    for record in error.errors():
        location = ".".join(str(part) for part in record.get("loc", ()))
        origin = provenance.get(location)
        origin_text = f" [{origin.render()}]" if origin else ""
        detail = record.get("msg", "invalid value")
        input_value = record.get("input")
        if input_value is not None and not _is_secret(location):
            detail += f" (received={input_value!r})"
        messages.append(f"{location or '<root>'}: {detail}{origin_text}")
    combined = "\n - ".join(messages)
    return ConfigError(f"Configuration validation failed:\n - {combined}")


def _validate(merged: Mapping[str, Any], provenance: Mapping[str, ConfigValueOrigin]) -> Config:
    try:
        return Config.model_validate(merged)
    except ValidationError as exc:
        raise _format_validation_error(exc, provenance) from exc


def load_config(
    path: Path | None = None,
    *,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration by merging defaults, files and environment layers."""

    config_path = path if path else _default_paths()[0]
    env_path = _detect_env_path(config_path)
    runtime_env = os.environ if environ is None else environ

    merged: Dict[str, Any] = {}
    provenance: Dict[str, ConfigValueOrigin] = {}
    _merge_layer(
        merged,
        DEFAULT_CONFIG.model_dump(mode="python"),
        provenance,
        origin=ConfigValueOrigin(LAYER_DEFAULTS, "futnews.config_schema.DEFAULT_CONFIG"),
    )

    file_data = _load_toml(config_path)
    if file_data:
        _merge_layer(
            merged,
            file_data,
            provenance,
            origin=ConfigValueOrigin(LAYER_FILE, str(config_path)),
        )

    if env_path.exists():
        for key, value in dotenv_values(env_path, verbose=False).items():
            if value is None or not key.startswith(env_prefix + "__"):
                continue
            path_key, parsed_value = _parse_kv_override(key, value, env_prefix)
            _assign_path(merged, path_key, parsed_value)
            provenance[path_key] = ConfigValueOrigin(LAYER_ENV_FILE, str(env_path), key)

    for key, value in runtime_env.items():
        if not key.startswith(env_prefix + "__"):
            continue
        path_key, parsed_value = _parse_kv_override(key, value, env_prefix)
        _assign_path(merged, path_key, parsed_value)
        provenance[path_key] = ConfigValueOrigin(LAYER_ENV, "process", key)

    config = _validate(merged, provenance)
    config._metadata = ConfigMetadata(
        config_path=config_path,
        env_path=env_path if env_path.exists() else None,
        env_prefix=env_prefix,
        provenance=provenance,
    )
    return config


def save_config(config: Config, path: Path | None = None) -> Path:
    """Persist the configuration as TOML, replacing the target atomically."""

    metadata = getattr(config, "_metadata", None)
    target_path = path or (metadata.config_path if metadata else _default_paths()[0])
    target_path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        prefix=".futnews-config-", dir=str(target_path.parent), delete=False
    ) as handle:
        tmp_path = Path(handle.name)
        tomli_w.dump(_to_toml_payload(config), handle)
    try:
        os.replace(tmp_path, target_path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Failed to persist configuration: {exc}") from exc
    return target_path


def _flatten_mapping(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        composed = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten_mapping(value, composed))
        else:
            flat[composed] = value
    return flat


def _resolve_value(mapping: Mapping[str, Any], path: str) -> Any:
    current: Any = mapping
    for segment in path.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            raise ConfigError(f"Unknown configuration key: {path}")
    return current


def _safe_repr(value: Any) -> str:
    if isinstance(value, Path):
        return str(value)
    try:
        return json.dumps(value, ensure_ascii=False)
    except TypeError:
        return repr(value)


def _format_schema_table() -> str:
    headers = ["Field", "Type", "Default", "Description", "Constraints"]
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(["---"] * len(headers)) + " |",
    ]
    for entry in iter_field_docs(DEFAULT_CONFIG):
        default = "" if entry["default"] is None else _safe_repr(entry["default"])
        row = [
            str(entry["name"]),
            str(entry["type"]),
            default,
            str(entry.get("description", "")),
            str(entry.get("constraints", "")),
        ]
        lines.append("| " + " | ".join(row) + " |")
    return "\n".join(lines)


def _explain(config: Config, key: str) -> str:
    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    if metadata is None:
        raise ConfigError("Configuration metadata is unavailable")
    value = _resolve_value(config.model_dump(mode="python"), key)
    origin = metadata.provenance.get(key)
    origin_text = origin.render() if origin else "unknown"
    formatted_value = "***masked***" if _is_secret(key) else _safe_repr(value)
    return f"{key} = {formatted_value}\nsource: {origin_text}"


def apply_updates(config: Config, updates: Mapping[str, str]) -> Config:
    """Return a validated copy of ``config`` with dotted-key overrides applied."""

    baseline = config.model_dump(mode="python")
    updated = json.loads(json.dumps(baseline, default=str))
    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    provenance = dict(metadata.provenance) if metadata else {}
    known_paths = set(_flatten_mapping(baseline))
    for key, raw_value in updates.items():
        if key not in known_paths:
            parent = key.rpartition(".")[0]
            if not parent or not isinstance(_resolve_value(baseline, parent), Mapping):
                raise ConfigError(f"Unknown configuration key: {key}")
        _assign_path(updated, key, _coerce_text(raw_value))
        provenance[key] = ConfigValueOrigin(LAYER_CLI, "runtime")
    new_config = _validate(updated, provenance)
    if metadata:
        metadata.provenance = provenance
    new_config._metadata = metadata
    return new_config


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Football news pipeline configuration utilities",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to the TOML configuration file")
    parser.add_argument(
        "--env-prefix",
        default=DEFAULT_ENV_PREFIX,
        help="Environment variable prefix (e.g. FUTNEWS__DEDUP__TIME_WINDOW_HOURS)",
    )
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("--validate", action="store_true", help="Validate the active configuration")
    actions.add_argument("--dump-defaults", action="store_true", help="Print built-in defaults as TOML")
    actions.add_argument("--print-schema", action="store_true", help="Print a Markdown table of all fields")
    actions.add_argument("--show-sources", action="store_true", help="Show configuration source precedence")
    actions.add_argument("--explain", metavar="KEY", help="Explain where a field value originates")
    actions.add_argument(
        "--set",
        nargs="+",
        metavar="KEY=VALUE",
        help="Apply validated updates and persist them to the config file",
    )

    args = parser.parse_args(argv)

    try:
        if args.dump_defaults:
            sys.stdout.write(tomli_w.dumps(_to_toml_payload(DEFAULT_CONFIG)))
            return 0
        if args.print_schema:
            sys.stdout.write(_format_schema_table() + "\n")
            return 0

        config = load_config(args.config, env_prefix=args.env_prefix)
        if args.validate:
            print("Configuration OK")
            return 0
        if args.show_sources:
            metadata: ConfigMetadata = config._metadata
            print("Active configuration sources:")
            for item in metadata.describe_sources():
                print(f"- {item}")
            return 0
        if args.explain:
            print(_explain(config, args.explain))
            return 0
        if args.set:
            updates: Dict[str, str] = {}
            for item in args.set:
                if "=" not in item:
                    raise ConfigError(f"Invalid --set argument: '{item}'")
                key, value = item.split("=", 1)
                updates[key.strip()] = value
            before = _flatten_mapping(config.model_dump(mode="python"))
            new_config = apply_updates(config, updates)
            after = _flatten_mapping(new_config.model_dump(mode="python"))
            for key in sorted(k for k in after if after[k] != before.get(k)):
                shown_old = "***masked***" if _is_secret(key) else _safe_repr(before.get(key))
                shown_new = "***masked***" if _is_secret(key) else _safe_repr(after[key])
                print(f"{key}: {shown_old} -> {shown_new}")
            print(f"Saved configuration to {save_config(new_config, args.config)}")
            return 0
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI entry point
    raise SystemExit(main())
