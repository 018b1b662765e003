#!/usr/bin/env python3
"""
Shardkey CLI: validate composite id options and key documents.

Commands:
  check-config: Validate processor options against the schema
  key:          Compute the composite id for a single JSON document
  ingest:       Key a JSONL file of documents and index them into Chroma
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm

from catalog import load_schema
from composite_id import CompositeKeyBuilder, load_builder
from config import config
from errors import CompositeIdError, InvalidFieldValueError
from indexer import get_client
from processor import ProcessReport, build_chain, process_documents

logger = logging.getLogger(__name__)

# Constants for output formatting
MAX_REJECTED_SHOWN = 10


def load_builder_from_args(args: argparse.Namespace) -> CompositeKeyBuilder:
    """Load schema and options (CLI flags override config) and validate them once.

    Raises:
        CompositeIdError: for any configuration problem.
    """
    schema_path = getattr(args, "schema", None) or config.SCHEMA_PATH
    catalog = load_schema(schema_path)
    options = config.processor_options(getattr(args, "options", None))
    return load_builder(options, catalog)


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Read documents from a JSONL file, one JSON object per non-blank line.

    Raises:
        ValueError: for unreadable or non-UTF-8 files and lines that are not JSON objects.
    """
    docs: list[dict[str, Any]] = []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"Cannot read input file {path}: {exc}") from exc
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}:{lineno}: invalid JSON: {exc}") from exc
        if not isinstance(row, dict):
            raise ValueError(f"{path}:{lineno}: expected a JSON object")
        docs.append(row)
    return docs


def print_report(report: ProcessReport) -> None:
    print("\nIngest complete:")
    print(f"  Accepted: {report.accepted}")
    print(f"  Rejected: {len(report.rejected)}")
    for rej in report.rejected[:MAX_REJECTED_SHOWN]:
        print(f"    - #{rej.index}: {rej.message}")
    if len(report.rejected) > MAX_REJECTED_SHOWN:
        print(f"    ... {len(report.rejected) - MAX_REJECTED_SHOWN} more")
    if report.index_stats is not None:
        print(f"  Upserted: {report.index_stats.upserted}")
        print(f"  Added: {report.index_stats.added}")
        print(f"  Skipped duplicates: {report.index_stats.skipped}")


def report_to_dict(report: ProcessReport) -> dict[str, Any]:
    out: dict[str, Any] = {
        "accepted": report.accepted,
        "rejected": [{"index": r.index, "fields": r.fields, "message": r.message} for r in report.rejected],
        "keys": report.keys,
    }
    if report.index_stats is not None:
        out["index"] = {
            "upserted": report.index_stats.upserted,
            "added": report.index_stats.added,
            "skipped": report.index_stats.skipped,
        }
    return out


def cmd_check_config(args: argparse.Namespace) -> int:
    """Check-config command: validate options and print the effective configuration.

    Returns:
        Exit code (0 when valid, 2 on configuration errors)
    """
    try:
        builder = load_builder_from_args(args)
    except CompositeIdError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    print("Configuration OK")
    print(builder.config.to_yaml(), end="")
    return 0


def cmd_key(args: argparse.Namespace) -> int:
    """Key command: compute the composite id for one document.

    Returns:
        Exit code (0 on success, 1 for invalid field values, 2 for configuration errors)
    """
    try:
        builder = load_builder_from_args(args)
    except CompositeIdError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    raw = args.doc if args.doc is not None else sys.stdin.read()
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"Document is not valid JSON: {e}", file=sys.stderr)
        return 2
    if not isinstance(document, dict):
        print("Document must be a JSON object", file=sys.stderr)
        return 2

    try:
        result = builder.build(document)
    except InvalidFieldValueError as e:
        print(f"Rejected: {e}", file=sys.stderr)
        return 1

    if args.json:
        payload = result.model_dump()
        payload["passthrough"] = result.is_passthrough
        print(json.dumps(payload, indent=2))
    elif result.is_passthrough:
        print("Composite id generation is disabled; document passes through unchanged.")
    else:
        print(result.key)
    return 0


def cmd_ingest(args: argparse.Namespace) -> int:
    """Ingest command: key every document of a JSONL file and index the accepted ones.

    Rejected documents are reported but do not stop the run.

    Returns:
        Exit code (0 on success, 1 on index failures, 2 on configuration/input errors)
    """
    try:
        builder = load_builder_from_args(args)
        documents = read_jsonl(args.input)
    except (CompositeIdError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if not documents:
        print("No documents found.", file=sys.stderr)
        return 0

    client = None
    if not args.dry_run:
        db_path_used = str(Path(args.db_path).resolve()) if args.db_path else config.CHROMA_PATH
        print(f"Using ChromaDB at: {db_path_used}")
        client = get_client(path=db_path_used)

    chain = build_chain(
        builder,
        index=not args.dry_run,
        client=client,
        collection_name=args.collection,
    )

    try:
        report = process_documents(tqdm(documents, desc="Keying", disable=args.json), chain)
    except Exception as e:
        logger.exception("Indexing failed")
        print(f"Indexing failed: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report_to_dict(report), indent=2))
    else:
        print_report(report)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="shardkey",
        description="Shardkey CLI: composite id (shard key) generation",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (overrides LOG_LEVEL from config)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_config_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--schema",
            type=Path,
            default=None,
            help="YAML schema (field catalog). Defaults to SCHEMA_PATH from config.",
        )
        p.add_argument(
            "--options",
            type=Path,
            default=None,
            help="YAML processor options. Defaults to PROCESSOR_CONFIG_PATH; env overrides still apply.",
        )

    # check-config subcommand
    check_parser = subparsers.add_parser("check-config", help="Validate processor options against the schema")
    add_config_args(check_parser)

    # key subcommand
    key_parser = subparsers.add_parser("key", help="Compute the composite id of one document")
    add_config_args(key_parser)
    key_parser.add_argument(
        "--doc",
        type=str,
        default=None,
        help="Document as a JSON object (read from stdin when omitted)",
    )
    key_parser.add_argument("--json", action="store_true", help="Output the full result as JSON")
    key_parser.epilog = (
        "Examples:\n"
        "  shardkey key --doc '{\"entityType\": \"Person\", \"id\": \"42\"}'\n"
        "  cat doc.json | shardkey key --json\n"
    )

    # ingest subcommand
    ingest_parser = subparsers.add_parser("ingest", help="Key and index a JSONL file of documents")
    add_config_args(ingest_parser)
    ingest_parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSONL file with one document per line",
    )
    ingest_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute keys and report rejections without indexing",
    )
    ingest_parser.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="ChromaDB storage path (overrides CHROMA_PATH from config). Will be resolved to absolute.",
    )
    ingest_parser.add_argument(
        "--collection",
        type=str,
        default=None,
        help="Chroma collection name (overrides COLLECTION_NAME from config)",
    )
    ingest_parser.add_argument("--json", action="store_true", help="Output the report as JSON")
    ingest_parser.epilog = (
        "Examples:\n"
        "  shardkey ingest --input docs.jsonl --schema schema.yaml --options processor.yaml\n"
        "  shardkey ingest --input docs.jsonl --dry-run\n"
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or config.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check-config":
        rc = cmd_check_config(args)
    elif args.command == "key":
        rc = cmd_key(args)
    elif args.command == "ingest":
        rc = cmd_ingest(args)
    else:
        parser.print_help()
        rc = 2

    sys.exit(rc)


if __name__ == "__main__":
    main()
