"""
Command-line interface for layerscan.

Scans one container image with Clair and exits non-zero when the number of
actionable vulnerabilities exceeds the configured threshold. Every option
can also be given through the environment variable named in its help text.
"""

import argparse
import logging
import sys
from typing import Optional, TextIO

from constants import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_SCAN_FAILED,
    EXIT_THRESHOLD_EXCEEDED,
    OUTPUT_FORMATS,
)
from core.allowlist import load_allowlist
from core.config import ScanConfig, env, parse_bool_option
from core.exceptions import LayerscanException, ScanException
from core.scanner import VulnerabilityScanner, default_backends
from outputs import get_formatter
from utils.logging_helpers import error_messages, log_error_section, log_scan_outcome

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def parse_args(args: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments, falling back to environment variables."""
    parser = argparse.ArgumentParser(
        prog="layerscan",
        description="Scan a container image for vulnerabilities with Clair",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    clair_group = parser.add_argument_group("clair options")
    registry_group = parser.add_argument_group("registry options")
    report_group = parser.add_argument_group("report options")

    parser.add_argument("image", nargs="?", help="Image reference, e.g. nginx:1.25 or quay.io/org/app@sha256:...")

    # Clair options
    clair_group.add_argument("--clair-addr", default=env("CLAIR_ADDR"), help="Clair address (CLAIR_ADDR).")
    clair_group.add_argument("--clair-timeout", default=env("CLAIR_TIMEOUT"), help="Clair timeout in minutes (CLAIR_TIMEOUT).")

    # Registry options
    registry_group.add_argument("--docker-user", default=env("DOCKER_USER"), help="Registry user (DOCKER_USER).")
    registry_group.add_argument("--docker-password", default=env("DOCKER_PASSWORD"), help="Registry password (DOCKER_PASSWORD).")
    registry_group.add_argument("--docker-token", default=env("DOCKER_TOKEN"), help="Base64 basic-auth token (DOCKER_TOKEN).")
    registry_group.add_argument("--docker-insecure", default=env("DOCKER_INSECURE"), help="Skip TLS verification (DOCKER_INSECURE).")
    registry_group.add_argument("--registry-insecure", default=env("REGISTRY_INSECURE"), help="Use plain HTTP (REGISTRY_INSECURE).")
    registry_group.add_argument("--docker-timeout", default=env("DOCKER_TIMEOUT"), help="Registry timeout in minutes (DOCKER_TIMEOUT).")
    registry_group.add_argument("--platform-os", default=env("PLATFORM_OS"), help="Manifest list OS (PLATFORM_OS).")
    registry_group.add_argument("--platform-arch", default=env("PLATFORM_ARCH"), help="Manifest list architecture (PLATFORM_ARCH).")

    # Report options
    report_group.add_argument("--clair-output", default=env("CLAIR_OUTPUT"), help="Lowest severity to report (CLAIR_OUTPUT).")
    report_group.add_argument("--threshold", default=env("CLAIR_THRESHOLD"), help="Allowed actionable vulnerabilities (CLAIR_THRESHOLD).")
    report_group.add_argument("--format-output", default=env("FORMAT_OUTPUT"), help=f"One of {', '.join(OUTPUT_FORMATS)} (FORMAT_OUTPUT).")
    report_group.add_argument("--json-output", default=env("JSON_OUTPUT"), help="Deprecated, same as --format-output json (JSON_OUTPUT).")
    report_group.add_argument("--whitelist-file", default=env("WHITELIST_FILE"), help="Allow-list YAML file (WHITELIST_FILE).")
    report_group.add_argument("--ignore-unfixed", default=env("IGNORE_UNFIXED"), help="Count only fixable vulnerabilities (IGNORE_UNFIXED).")

    # Other options
    parser.add_argument("--trace", action="store_true", default=parse_bool_option(env("KLAR_TRACE")), help="Dump registry and Clair traffic (KLAR_TRACE).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")

    return parser.parse_args(args)


def run(config: ScanConfig, stream: TextIO = sys.stdout) -> int:
    """
    Scan one image and write its report.

    Returns:
        Process exit code
    """
    scanner = VulnerabilityScanner(
        registry_config=config.registry,
        backends=default_backends(config.clair_address, config.clair_timeout, config.trace),
        allowlist=load_allowlist(config.allowlist_file),
        ignore_unfixed=config.ignore_unfixed,
        min_severity=config.min_severity,
    )
    formatter = get_formatter(config.output_format, config.min_severity)

    logger.info(f"Scanning {config.image}")
    try:
        report = scanner.scan(config.image)
    except ScanException as e:
        log_error_section("Failed to analyze, exiting", error_messages(e), logger=logger)
        return EXIT_SCAN_FAILED

    formatter.render(report, stream)

    if log_scan_outcome(report, config.threshold, logger=logger):
        return EXIT_THRESHOLD_EXCEEDED
    return EXIT_OK


def main(args: Optional[list[str]] = None) -> int:
    """Main entry point for the scan command."""
    parsed = parse_args(args)
    setup_logging(parsed.verbose or parsed.trace)

    try:
        config = ScanConfig.from_args(parsed)
        return run(config)
    except LayerscanException as e:
        log_error_section(f"Can't scan {parsed.image or 'image'}", error_messages(e), logger=logger)
        return EXIT_FAILURE


def main_dispatch():
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    main_dispatch()
