#!/usr/bin/env python3
"""
CLI entry point for the hcxmap toolkit.

Defines the following commands:
  hcxmap locate [-d DIR] [-c] [--csv-output FILE] [-k] [--kml-output FILE] [-f] [--no-hashcat]
  hcxmap serve [-d DIR] [--port 8000] [--no-hashcat]
  hcxmap version
"""

import sys
from argparse import SUPPRESS, ArgumentParser, Namespace
from importlib.metadata import PackageNotFoundError, version as _get_version
from pathlib import Path

import uvicorn

from hcxmap.analysis.config import LocatorConfig
from hcxmap.export.csv_writer import export_to_csv
from hcxmap.export.filtering import filter_interesting, filtered_name
from hcxmap.export.kml_writer import export_to_kml
from hcxmap.pipeline import locate
from hcxmap.server import create_app
from hcxmap.utils.log import LEVELS, get_logger, set_level

logger = get_logger(__name__)

DEFAULT_CSV = "wifi_aps.csv"
DEFAULT_KML = "wifi_aps.kml"


def run_locate(
    directory: str,
    csv: bool,
    csv_output: str | None,
    kml: bool,
    kml_output: str | None,
    filter: bool,
    no_hashcat: bool,
    vendor_file: str | None,
) -> None:
    """
    Locate access points and write the requested exports.

    Parameters
    ----------
    directory
        Working directory holding `.pcapng`, `.nmea` and `.22000` files.
    csv, csv_output
        Write a CSV export (to `csv_output`, default `wifi_aps.csv`).
    kml, kml_output
        Write a KML export (to `kml_output`, default `wifi_aps.kml`).
    filter
        Also write `*_filtered` exports limited to interesting APs.
    no_hashcat
        Skip password recovery through hashcat.
    vendor_file
        Optional full `Mac Prefix,Vendor Name` CSV replacing the bundled table.
    """
    logger.info("Locate: directory=%s", directory)
    result = locate(
        Path(directory),
        LocatorConfig.default(),
        use_hashcat=not no_hashcat,
        vendor_file=Path(vendor_file) if vendor_file else None,
    )
    aps = result.access_points

    want_csv = csv or csv_output is not None
    want_kml = kml or kml_output is not None
    csv_path = csv_output or DEFAULT_CSV
    kml_path = kml_output or DEFAULT_KML

    if want_csv:
        export_to_csv(aps, csv_path)
    if want_kml:
        export_to_kml(aps, kml_path)

    if filter and (want_csv or want_kml):
        interesting = filter_interesting(aps)
        logger.info("Filtered %d interesting access points", len(interesting))
        if want_csv:
            export_to_csv(interesting, filtered_name(csv_path))
        if want_kml:
            export_to_kml(interesting, filtered_name(kml_path))


def serve(directory: str, port: int, no_hashcat: bool) -> None:
    """
    Locate access points, then serve the results over HTTP.

    Parameters
    ----------
    directory
        Working directory holding the capture files.
    port
        Port on which to serve HTTP.
    no_hashcat
        Skip password recovery through hashcat.
    """
    logger.info("Serve: directory=%s, port=%d", directory, port)
    result = locate(Path(directory), LocatorConfig.default(), use_hashcat=not no_hashcat)
    app = create_app(result)
    uvicorn.run(app, host="127.0.0.1", port=port)


def version() -> None:
    """
    Print the installed hcxmap package version.
    """
    try:
        ver = _get_version("hcxmap")
    except PackageNotFoundError:
        ver = "unknown"
    logger.info("hcxmap version %s", ver)


def build_parser() -> ArgumentParser:
    """
    Build the argument parser with all subcommands.
    """
    parser = ArgumentParser(
        prog="hcxmap",
        description=(
            "Estimate the location of WiFi access points from .pcapng captures "
            "and .nmea GPS logs. APs seen fewer than three times are placed with "
            "a weighted centroid or their single observation."
        ),
    )
    parser.add_argument(
        "--log-level", type=str.lower, choices=list(LEVELS), default="info",
        help="Log level (off, error, warn, info, debug, trace).",
    )
    # also accepted after the subcommand, without clobbering the global value
    common = ArgumentParser(add_help=False)
    common.add_argument("--log-level", type=str.lower, choices=list(LEVELS), default=SUPPRESS)
    subparsers = parser.add_subparsers(dest="command", required=True)

    # hcxmap locate
    p = subparsers.add_parser("locate", parents=[common], help="Locate access points.")
    p.add_argument("-d", "--directory", type=str, default=".", help="Working directory, e.g. ./dumps")
    p.add_argument("-c", "--csv", action="store_true", help="Export the access points to a CSV file.")
    p.add_argument("--csv-output", type=str, help="Path to output CSV file.")
    p.add_argument("-k", "--kml", action="store_true", help="Export the map to a KML file.")
    p.add_argument("--kml-output", type=str, help="Path to output KML file.")
    p.add_argument("-f", "--filter", action="store_true", help="Also export interesting APs only.")
    p.add_argument("--no-hashcat", action="store_true", help="Disable hashcat password binding.")
    p.add_argument("--vendor-file", type=str, help="MAC vendor CSV (Mac Prefix,Vendor Name) used instead of the OUI database.")

    # hcxmap serve
    p = subparsers.add_parser("serve", parents=[common], help="Serve results via FastAPI + Uvicorn.")
    p.add_argument("-d", "--directory", type=str, default=".", help="Working directory.")
    p.add_argument("--port", type=int, default=8000, help="Port number to serve on.")
    p.add_argument("--no-hashcat", action="store_true", help="Disable hashcat password binding.")

    # hcxmap version
    subparsers.add_parser("version", parents=[common], help="Show hcxmap version and exit.")

    return parser


def parse_args(argv: list[str] | None = None) -> Namespace:
    """
    Parse command-line arguments and return the populated namespace.
    """
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """
    Entry point: dispatch to the selected subcommand.
    """
    args = parse_args(argv)
    set_level(args.log_level)
    try:
        match args.command:
            case "locate":
                run_locate(
                    args.directory, args.csv, args.csv_output, args.kml,
                    args.kml_output, args.filter, args.no_hashcat, args.vendor_file,
                )
            case "serve":
                serve(args.directory, args.port, args.no_hashcat)
            case "version":
                version()
            case _:
                sys.exit(1)
    except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
        logger.error("hcxmap failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
