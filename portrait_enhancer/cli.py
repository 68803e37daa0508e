"""Command-line interface wiring for the portrait enhancer."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from .errors import EnhancementError
from .io_utils import default_output_path
from .parameters import DEFAULT_PARAMETERS, ParameterSet
from .pipeline import enhance_file
from .profiles import DEFAULT_PROFILE_NAME, PROCESSING_PROFILES

LOGGER = logging.getLogger("portrait_enhancer")

PARAMETER_FIELDS = tuple(field.name for field in dataclasses.fields(ParameterSet))


def _load_config_data(path: Path) -> Mapping[str, Any]:
    """Load configuration from JSON or YAML file.

    Raises:
        FileNotFoundError: If configuration file doesn't exist.
        ValueError: If file content is not a valid mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(path.read_text())
        else:
            data = json.loads(path.read_text())
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"Unable to parse configuration file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping of option names to values")
    return data


def _normalise_config_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    normalised: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise ValueError("Configuration keys must be strings")
        normalised[key.replace("-", "_")] = value
    return normalised


def _build_parser_aliases(parser: argparse.ArgumentParser) -> tuple[dict[str, argparse.Action], dict[str, str]]:
    """Map every option spelling to its parser action."""
    dest_to_action: dict[str, argparse.Action] = {}
    alias_to_dest: dict[str, str] = {}
    for action in parser._actions:
        if action.dest in {argparse.SUPPRESS, "help", "config"}:
            continue
        dest_to_action[action.dest] = action
        alias_to_dest[action.dest] = action.dest
        for option_string in action.option_strings:
            alias = option_string.lstrip("-").replace("-", "_")
            alias_to_dest[alias] = action.dest
    return dest_to_action, alias_to_dest


def _coerce_config_value(action: argparse.Action, value: Any, *, source: Path, key: str) -> Any:
    """Convert configuration values so they match argparse expectations."""
    if value is None:
        return None

    if isinstance(action, argparse._StoreTrueAction):  # type: ignore[attr-defined]
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
        raise ValueError(
            f"Invalid boolean for '{key}' in {source}: expected true/false value, got {value!r}"
        )

    if action.type is not None:
        try:
            converted = action.type(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for '{key}' in {source}: {exc}") from exc
    else:
        converted = value

    if action.choices is not None and converted not in action.choices:
        raise ValueError(
            f"Invalid value for '{key}' in {source}: {converted!r} (choose from {sorted(action.choices)})"
        )
    return converted


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Enhance a photo with exposure, tone, colour and detail adjustments.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional configuration file (JSON, or YAML for .yaml/.yml)",
    )
    parser.add_argument("input", type=Path, help="Photo to enhance")
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=None,
        help="Where to write the JPEG. Defaults to '<input stem>-enhanced.jpg' next to the input.",
    )
    parser.add_argument(
        "--profile",
        default=DEFAULT_PROFILE_NAME,
        choices=sorted(PROCESSING_PROFILES.keys()),
        help="Processing profile balancing latency and output size",
    )
    parser.add_argument(
        "--quality",
        type=float,
        default=None,
        help="JPEG quality between 0 and 1 (defaults to the profile's quality)",
    )
    parser.add_argument("--overwrite", action="store_true", help="Replace an existing output file")
    parser.add_argument("--dry-run", action="store_true", help="Enhance without writing the output")

    # Enhancement parameter overrides.
    parser.add_argument("--exposure", type=float, default=None, help="Brightness multiplier")
    parser.add_argument("--contrast", type=float, default=None, help="Contrast multiplier")
    parser.add_argument("--saturation", type=float, default=None, help="Saturation multiplier")
    parser.add_argument(
        "--temperature", type=float, default=None, help="Warm (+) / cool (-) shift between -100 and 100"
    )
    parser.add_argument("--shadow-lift", type=float, default=None, help="Shadow brightening strength")
    parser.add_argument(
        "--highlight-recover", type=float, default=None, help="Highlight darkening strength"
    )
    parser.add_argument("--clarity", type=float, default=None, help="Local contrast boost strength")
    parser.add_argument("--smoothness", type=float, default=None, help="Blend toward the local average")
    parser.add_argument(
        "--resolution-boost", type=float, default=None, help="Output scale relative to the source"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )

    argv_list = list(argv) if argv is not None else None

    config_probe, _ = parser.parse_known_args(argv_list)
    if config_probe.config is not None:
        try:
            raw_config = _normalise_config_keys(_load_config_data(config_probe.config))
            dest_to_action, alias_to_dest = _build_parser_aliases(parser)

            converted_defaults: dict[str, Any] = {}
            for key, value in raw_config.items():
                dest = alias_to_dest.get(key)
                if dest is None:
                    raise ValueError(f"Unknown configuration option '{key}' in {config_probe.config}")
                converted_defaults[dest] = _coerce_config_value(
                    dest_to_action[dest], value, source=config_probe.config, key=key
                )
            parser.set_defaults(**converted_defaults)
        except (OSError, ValueError) as exc:
            parser.error(str(exc))

    args = parser.parse_args(argv_list)
    if args.quality is not None and not 0 < args.quality <= 1:
        parser.error("--quality must be greater than 0 and at most 1")
    if args.output is None:
        args.output = default_output_path(args.input)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")
    return args


def build_parameters(args: argparse.Namespace) -> ParameterSet:
    """Overlay CLI overrides on :data:`DEFAULT_PARAMETERS`.

    Raises:
        ValueError: If an override falls outside its documented domain.
    """
    overrides = {
        name: getattr(args, name)
        for name in PARAMETER_FIELDS
        if getattr(args, name, None) is not None
    }
    params = ParameterSet.from_mapping(overrides, base=DEFAULT_PARAMETERS)
    LOGGER.debug("Using parameters: %s", params)
    return params


def run_enhancement(args: argparse.Namespace) -> int:
    """Enhance ``args.input`` and return the number of files written."""
    params = build_parameters(args)
    profile = PROCESSING_PROFILES[args.profile]
    source = args.input.resolve()
    destination = args.output.resolve()

    if not source.is_file():
        raise SystemExit(f"Input photo '{source}' does not exist or is not a file")
    if source == destination:
        raise SystemExit("Output path must differ from the input photo to avoid overwriting it.")
    if destination.exists() and not args.overwrite and not args.dry_run:
        LOGGER.warning("Skipping %s (exists, use --overwrite to replace)", destination)
        return 0

    written = enhance_file(
        source,
        destination,
        params,
        profile=profile,
        quality=args.quality,
        dry_run=args.dry_run,
    )
    if written:
        LOGGER.info("Wrote %s", destination)
    return int(written)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    try:
        run_enhancement(args)
    except EnhancementError as exc:
        LOGGER.error("%s", exc.reason)
        return 1
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 2
    return 0


__all__ = [
    "build_parameters",
    "main",
    "parse_args",
    "run_enhancement",
]
