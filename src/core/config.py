"""
Scan configuration.

Collects command-line arguments and environment variables into one explicit
configuration value that is threaded into the registry session and the scan
backends, instead of process-wide flags.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from constants import (
    DEFAULT_CLAIR_TIMEOUT,
    DEFAULT_PLATFORM,
    DEFAULT_REGISTRY_TIMEOUT,
    FORMAT_JSON,
    OUTPUT_FORMATS,
)
from core.exceptions import ConfigurationException
from core.models import SeverityLevel
from core.registry import RegistryConfig

TRUE_VALUES = frozenset({"1", "t", "true", "y", "yes", "on"})
FALSE_VALUES = frozenset({"0", "f", "false", "n", "no", "off"})


def parse_int_option(value: Optional[str], default: int = 0) -> int:
    """
    Parse an integer option; empty or unparseable values give the default.
    """
    if value is None or not str(value).strip():
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_bool_option(value: Optional[str], default: bool = False) -> bool:
    """Parse a boolean option; unrecognized values give the default."""
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return default


def parse_output_priority(value: Optional[str]) -> SeverityLevel:
    """
    Parse the lowest severity to report, case-insensitively.

    Raises:
        ConfigurationException: If the value is not a known severity
    """
    if not value:
        return SeverityLevel.UNKNOWN
    normalized = value.strip().lower()
    for level in SeverityLevel.ordered_levels():
        if level.value.lower() == normalized:
            return level
    supported = ", ".join(level.value for level in SeverityLevel.ordered_levels())
    raise ConfigurationException(
        f"Clair output level {value} is not supported, only support {supported}"
    )


def parse_format(value: Optional[str], json_output: bool = False) -> str:
    """
    Parse the report format.

    The deprecated JSON_OUTPUT switch overrides an explicit format.

    Raises:
        ConfigurationException: If the format is unknown
    """
    if json_output:
        return FORMAT_JSON
    if not value:
        return OUTPUT_FORMATS[0]
    normalized = value.strip().lower()
    if normalized not in OUTPUT_FORMATS:
        raise ConfigurationException(
            f"Format type {value} is not supported, only support {', '.join(OUTPUT_FORMATS)}"
        )
    return normalized


@dataclass
class ScanConfig:
    """
    Everything one scan run needs.

    Attributes:
        image: Image reference to scan
        clair_address: Clair address (scheme and port optional)
        min_severity: Lowest severity that is reported and counted
        threshold: Largest actionable count that still passes
        output_format: Report format name
        clair_timeout: Per-request Clair timeout in seconds
        allowlist_file: Optional allow-list YAML file
        ignore_unfixed: Only count vulnerabilities with a fix available
        trace: Dump protocol traffic to the debug log
        registry: Registry session settings
    """

    image: str
    clair_address: str
    min_severity: SeverityLevel = SeverityLevel.UNKNOWN
    threshold: int = 0
    output_format: str = OUTPUT_FORMATS[0]
    clair_timeout: float = DEFAULT_CLAIR_TIMEOUT
    allowlist_file: Optional[Path] = None
    ignore_unfixed: bool = False
    trace: bool = False
    registry: RegistryConfig = field(default_factory=RegistryConfig)

    @classmethod
    def from_args(cls, args) -> "ScanConfig":
        """
        Build a configuration from parsed CLI arguments.

        Timeouts are given in minutes on the command line; a value of 0
        means the default.

        Raises:
            ConfigurationException: If a required value is missing or invalid
        """
        if not args.image:
            raise ConfigurationException("Image name must be provided")
        if not args.clair_addr:
            raise ConfigurationException("Clair address must be provided")

        clair_minutes = parse_int_option(args.clair_timeout)
        docker_minutes = parse_int_option(args.docker_timeout)
        trace = bool(args.trace)
        platform = f"{args.platform_os or 'linux'}/{args.platform_arch or 'amd64'}"

        return cls(
            image=args.image,
            clair_address=args.clair_addr,
            min_severity=parse_output_priority(args.clair_output),
            threshold=parse_int_option(args.threshold),
            output_format=parse_format(args.format_output, parse_bool_option(args.json_output)),
            clair_timeout=clair_minutes * 60 if clair_minutes > 0 else DEFAULT_CLAIR_TIMEOUT,
            allowlist_file=Path(args.whitelist_file) if args.whitelist_file else None,
            ignore_unfixed=parse_bool_option(args.ignore_unfixed),
            trace=trace,
            registry=RegistryConfig(
                username=args.docker_user or None,
                password=args.docker_password or None,
                token=args.docker_token or None,
                insecure_tls=parse_bool_option(args.docker_insecure),
                insecure_registry=parse_bool_option(args.registry_insecure),
                timeout=docker_minutes * 60 if docker_minutes > 0 else DEFAULT_REGISTRY_TIMEOUT,
                platform=platform if (args.platform_os or args.platform_arch) else DEFAULT_PLATFORM,
                trace=trace,
            ),
        )


def env(name: str) -> Optional[str]:
    """Environment variable value, None when unset or empty."""
    return os.environ.get(name) or None


__all__ = [
    "parse_int_option",
    "parse_bool_option",
    "parse_output_priority",
    "parse_format",
    "ScanConfig",
    "env",
]
