"""Command-line entry point.

Usage:
    pgcall [PATTERN] [--connect URL | --ddl FILE ... | --manifest FILE]
           [--base-dir DIR] [--pb-out PATH[:PKG]] [--protoc-gen GEN]
           [--no-compile] [--number-as-string] [--no-skip-missing-table-of]
           [--gogo] [--except NAMES] [--replace A=>B,...] [--proto-path DIR]
           [--max-table-size N] [-v]
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Sequence

from pgcall.base import PgcallError
from pgcall.config import Settings
from pgcall.generate import parse_pkg_flag, run
from pgcall.harvest import harvest_database, harvest_sql_files
from pgcall.harvest.common import apply_replacements, excluded, parse_replacements
from pgcall.models import Function, load_functions

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgcall",
        description="Generate a Protocol Buffers schema for PostgreSQL functions.",
    )
    parser.add_argument(
        "pattern",
        nargs="?",
        default="%",
        help="LIKE pattern of function names to read from the database",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--connect",
        default=settings.database_url,
        help="database to read function signatures from (default: $DATABASE_URL)",
    )
    source.add_argument(
        "--ddl", nargs="+", type=Path, help="read signatures from SQL files instead"
    )
    source.add_argument(
        "--manifest", type=Path, help="read signatures from a JSON manifest instead"
    )
    parser.add_argument("--base-dir", type=Path, default=Path("."))
    parser.add_argument(
        "--pb-out",
        default="-:pgcall",
        help='output path for the .proto file, optionally with the package name, like "my/pb:main"',
    )
    parser.add_argument("--protoc-gen", default=settings.protoc_gen, help="use protoc --<gen>_out")
    parser.add_argument("--no-compile", action="store_true", help="do not run protoc")
    parser.add_argument(
        "--number-as-string",
        action="store_true",
        default=settings.number_as_string,
        help="add ,string to json tags of numbers",
    )
    parser.add_argument(
        "--skip-missing-table-of",
        action=argparse.BooleanOptionalAction,
        default=settings.skip_missing_table_of,
        help="skip functions with missing TableOf info",
    )
    parser.add_argument(
        "--gogo",
        action="store_true",
        default=settings.gogo,
        help="gogo-compatible output (implied by --protoc-gen gogo*)",
    )
    parser.add_argument("--except", dest="exclude", default="", help="except these functions")
    parser.add_argument(
        "--replace",
        default="",
        help="expose funcB under the name funcA, like \"funcA=>funcB, pkg.c=>d\"",
    )
    parser.add_argument(
        "--proto-path",
        action="append",
        default=list(settings.proto_path),
        help="extra protoc import directory, e.g. the one holding gogo.proto (repeatable)",
    )
    parser.add_argument("--max-table-size", type=int, default=settings.max_table_size)
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose logging")
    return parser


def _split_names(value: str) -> list[str]:
    return [n for n in re.split(r"[,\s]+", value) if n]


def harvest(args: argparse.Namespace) -> list[Function]:
    exclude = _split_names(args.exclude)
    if exclude:
        log.info("except %s", exclude)
    if args.manifest is not None:
        with args.manifest.open() as fh:
            functions = load_functions(fh)
        lowered = {e.lower() for e in exclude}
        functions = [f for f in functions if not excluded(f.name, lowered)]
    elif args.ddl:
        functions = harvest_sql_files(args.ddl, exclude)
    else:
        functions = harvest_database(args.connect, args.pattern, exclude)
    return apply_replacements(functions, parse_replacements(args.replace))


def main(argv: Sequence[str] | None = None) -> int:
    try:
        env_settings = Settings.from_env()
    except ValueError as e:
        logging.basicConfig(format=LOG_FORMAT)
        log.error("%s", e)
        return 1
    args = build_parser(env_settings).parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    pb_path, pb_pkg = parse_pkg_flag(args.pb_out)
    if pb_path == "-":
        pb_path = ""
    try:
        settings = env_settings.replace(
            number_as_string=args.number_as_string,
            skip_missing_table_of=args.skip_missing_table_of,
            gogo=args.gogo,
            max_table_size=args.max_table_size,
            protoc_gen=args.protoc_gen,
            proto_path=tuple(args.proto_path),
            database_url=args.connect,
        )
        functions = harvest(args)
        outputs = run(
            functions,
            settings,
            base_dir=args.base_dir,
            pb_path=pb_path,
            pb_package=pb_pkg,
            compile_schema=not args.no_compile,
        )
    except (PgcallError, OSError, ValueError) as e:
        log.error("%s", e)
        return 1

    skipped = len(functions) - len(outputs.emitted)
    log.info(
        "Wrote %s (%d functions, %d skipped)", outputs.proto, len(outputs.emitted), skipped
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
