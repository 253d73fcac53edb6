"""Build configuration export and checks.

Turns the build configuration into the plain nested layout external build
tools expect (JSON or YAML), reads it back, and runs the sanity checks a
consuming tool would apply before compiling or deploying.

Persisted layout:
  networks:
    <name>: {host, port, network_id}
  compilers:
    solc:
      version
      settings: {evmVersion, optimizer: {enabled, runs}}

Example usage:
  python -m chain_build.config_io show --format yaml
  python -m chain_build.config_io export --out artifacts/ --format json
  python -m chain_build.config_io check --file artifacts/build-config.json
"""

from __future__ import annotations

import argparse
import hashlib
import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, Literal

import yaml

from chain_build.config import load
from chain_build.contracts import (
    EVM_VERSIONS,
    BuildConfiguration,
    CompilerSettings,
    CompilerSpec,
    NetworkEndpoint,
    OptimizerSettings,
)

LOGGER = logging.getLogger("config_io")

Format = Literal["json", "yaml"]

FORMAT_SUFFIXES: dict[str, Format] = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}
CONFIG_STEM = "build-config"

_SEMVER = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?$")


class ConfigFormatError(ValueError):
    """Input does not have the persisted configuration layout."""


# ----------------------------
# Utilities
# ----------------------------

def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def ensure_exists(path: Path, kind: str) -> None:
    if not path.exists():
        raise FileNotFoundError(f"{kind} not found: {path}")


def parse_format(fmt: str) -> Format:
    if fmt == "json":
        return "json"
    if fmt == "yaml":
        return "yaml"
    raise ValueError(f"Unsupported format: {fmt}")


# ----------------------------
# Plain mapping <-> BuildConfiguration
# ----------------------------

def to_dict(cfg: BuildConfiguration) -> dict[str, Any]:
    settings = cfg.solc.settings
    return {
        "networks": {
            name: {
                "host": ep.host,
                "port": ep.port,
                "network_id": ep.network_id,
            }
            for name, ep in cfg.networks.items()
        },
        "compilers": {
            "solc": {
                "version": cfg.solc.version,
                "settings": {
                    "evmVersion": settings.evm_version,
                    "optimizer": {
                        "enabled": settings.optimizer.enabled,
                        "runs": settings.optimizer.runs,
                    },
                },
            },
        },
    }


def _require(data: Any, key: str, kind: type | tuple[type, ...], path: str) -> Any:
    if not isinstance(data, Mapping):
        raise ConfigFormatError(f"{path or '<root>'}: expected a mapping, got {type(data).__name__}")
    if key not in data:
        raise ConfigFormatError(f"Missing key: {path}.{key}" if path else f"Missing key: {key}")
    value = data[key]
    where = f"{path}.{key}" if path else key
    # bool is an int subclass; don't let `port: true` through.
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise ConfigFormatError(f"{where}: expected {_kind_name(kind)}, got bool")
    if not isinstance(value, kind):
        raise ConfigFormatError(f"{where}: expected {_kind_name(kind)}, got {type(value).__name__}")
    return value


def _kind_name(kind: type | tuple[type, ...]) -> str:
    if isinstance(kind, tuple):
        return " or ".join(k.__name__ for k in kind)
    return kind.__name__


def from_dict(data: Mapping[str, Any]) -> BuildConfiguration:
    """Build a configuration from the persisted layout. Structural checks only."""
    networks_raw = _require(data, "networks", Mapping, "")
    networks: dict[str, NetworkEndpoint] = {}
    for name, raw in networks_raw.items():
        path = f"networks.{name}"
        if str(name) in networks:
            raise ConfigFormatError(f"Duplicate network name: {path}")
        network_id = _require(raw, "network_id", (str, int), path)
        networks[str(name)] = NetworkEndpoint(
            host=_require(raw, "host", str, path),
            port=_require(raw, "port", int, path),
            network_id=str(network_id),
        )

    compilers = _require(data, "compilers", Mapping, "")
    solc = _require(compilers, "solc", Mapping, "compilers")
    settings = _require(solc, "settings", Mapping, "compilers.solc")
    optimizer = _require(settings, "optimizer", Mapping, "compilers.solc.settings")

    return BuildConfiguration(
        networks=networks,
        solc=CompilerSpec(
            version=_require(solc, "version", str, "compilers.solc"),
            settings=CompilerSettings(
                evm_version=_require(settings, "evmVersion", str, "compilers.solc.settings"),
                optimizer=OptimizerSettings(
                    enabled=_require(optimizer, "enabled", bool, "compilers.solc.settings.optimizer"),
                    runs=_require(optimizer, "runs", int, "compilers.solc.settings.optimizer"),
                ),
            ),
        ),
    )


# ----------------------------
# Text formats
# ----------------------------

def dumps(cfg: BuildConfiguration, fmt: str = "json") -> str:
    data = to_dict(cfg)
    if parse_format(fmt) == "json":
        return json.dumps(data, indent=2, sort_keys=True) + "\n"
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def loads(text: str, fmt: str = "json") -> BuildConfiguration:
    if parse_format(fmt) == "json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigFormatError(f"Invalid JSON: {exc}") from exc
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigFormatError(f"Invalid YAML: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigFormatError(f"<root>: expected a mapping, got {type(data).__name__}")
    return from_dict(data)


def fingerprint(cfg: BuildConfiguration) -> str:
    """sha256 of the canonical JSON form."""
    canonical = json.dumps(to_dict(cfg), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ----------------------------
# Files
# ----------------------------

def save_config(cfg: BuildConfiguration, out_dir: Path, fmt: str = "json") -> Path:
    fmt = parse_format(fmt)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{CONFIG_STEM}.{fmt}"
    out_path.write_text(dumps(cfg, fmt), encoding="utf-8")
    LOGGER.info("Wrote %s (sha256 %s)", out_path, fingerprint(cfg))
    return out_path


def read_config(path: Path) -> BuildConfiguration:
    ensure_exists(path, "config file")
    fmt = FORMAT_SUFFIXES.get(path.suffix.lower())
    if fmt is None:
        raise ValueError(f"Unsupported config file type: {path} (expected .json, .yaml or .yml)")
    LOGGER.debug("Reading %s as %s", path, fmt)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigFormatError(f"{path} is not UTF-8 text: {exc}") from exc
    return loads(text, fmt)


# ----------------------------
# Consumer-side checks
# ----------------------------

def validate(cfg: BuildConfiguration) -> list[str]:
    """Problems a build tool would reject the configuration for; empty if none."""
    problems: list[str] = []

    for name, ep in cfg.networks.items():
        if not name:
            problems.append("network with empty name")
        if not ep.host.strip():
            problems.append(f"networks.{name}.host is empty")
        if not (1 <= ep.port <= 65535):
            problems.append(f"networks.{name}.port out of range: {ep.port}")
        if not ep.network_id:
            problems.append(f"networks.{name}.network_id is empty")

    if not _SEMVER.match(cfg.solc.version):
        problems.append(f"compilers.solc.version is not a semantic version: {cfg.solc.version!r}")

    settings = cfg.solc.settings
    if settings.evm_version not in EVM_VERSIONS:
        problems.append(f"compilers.solc.settings.evmVersion unknown: {settings.evm_version!r}")
    if settings.optimizer.runs < 0:
        problems.append(f"compilers.solc.settings.optimizer.runs is negative: {settings.optimizer.runs}")
    elif not settings.optimizer.enabled:
        LOGGER.debug("Optimizer disabled; runs=%d is ignored by solc", settings.optimizer.runs)

    return problems


# ----------------------------
# CLI
# ----------------------------

def cmd_show(fmt: str) -> int:
    print(dumps(load(), fmt), end="")
    return 0


def cmd_export(out_dir: Path, fmt: str) -> int:
    out_path = save_config(load(), out_dir, fmt)
    print(str(out_path))
    return 0


def cmd_check(path: Path | None) -> int:
    try:
        cfg = read_config(path) if path is not None else load()
    except (FileNotFoundError, ValueError) as exc:
        # ConfigFormatError and unsupported suffixes are both ValueError.
        print(exc)
        LOGGER.warning("Could not read configuration")
        return 1
    problems = validate(cfg)
    for problem in problems:
        print(problem)
    if problems:
        LOGGER.warning("%d problem(s) found", len(problems))
        return 1
    LOGGER.info("Configuration OK (sha256 %s)", fingerprint(cfg))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="config_io",
        description="Show, export and check the contracts build configuration.",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv).")

    sub = p.add_subparsers(dest="cmd", required=True)

    p_show = sub.add_parser("show", help="Print the build configuration.")
    p_show.add_argument("--format", choices=["json", "yaml"], default="json")

    p_export = sub.add_parser("export", help="Write the build configuration to a file.")
    p_export.add_argument("--out", required=True, type=Path, help="Output directory")
    p_export.add_argument("--format", choices=["json", "yaml"], default="json")

    p_check = sub.add_parser("check", help="Check a configuration for values a build tool would reject.")
    p_check.add_argument("--file", type=Path, help="Config file to check (default: built-in configuration)")

    return p


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    setup_logging(args.verbose)

    if args.cmd == "show":
        return cmd_show(args.format)

    if args.cmd == "export":
        return cmd_export(args.out, args.format)

    if args.cmd == "check":
        return cmd_check(args.file)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
