"""CLI entrypoints for docfacts commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import CONFIG_FILENAME, ConfigError, DocFactsConfig, load_config
from .diff import ALL_SECTIONS
from .logging import configure_logging
from .report import ReportRenderer, to_payload
from .session import DocSession, SessionMode
from .stores import SnapshotStore


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the source tree root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docfacts",
        description="Extract structural facts from Spring codebases and map changes to documentation sections.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Extract facts and report which documentation sections need regeneration.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_path_argument(analyze_parser)
    analyze_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SessionMode],
        default=SessionMode.FULL.value,
        help="full (default), incremental (diff against a previous snapshot) or selective.",
    )
    analyze_parser.add_argument(
        "--section",
        action="append",
        dest="sections",
        metavar="ID",
        help=f"Section to analyze in selective mode; repeatable. Known: {', '.join(ALL_SECTIONS)}.",
    )
    analyze_parser.add_argument(
        "--since",
        metavar="REF",
        help="Previous snapshot for incremental mode: a snapshot JSON file or a git ref.",
    )
    analyze_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    analyze_parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not persist the extracted snapshot.",
    )

    snapshot_parser = subparsers.add_parser(
        "snapshot",
        help="Extract every fact and write a snapshot file.",
    )
    _add_verbose_option(snapshot_parser, suppress_default=True)
    _add_path_argument(snapshot_parser)
    snapshot_parser.add_argument(
        "--output",
        type=Path,
        help="Snapshot destination (defaults to the configured snapshot path).",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docfacts commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=getattr(args, "format", "text") == "json")

    if args.command == "analyze":
        _run_analyze(parser, args)
    elif args.command == "snapshot":
        _run_snapshot(parser, args)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_analyze(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    mode = SessionMode.parse(args.mode)
    sections = args.sections or []
    if mode is SessionMode.SELECTIVE and not sections:
        parser.error("--mode selective requires at least one --section")
    if sections and mode is not SessionMode.SELECTIVE:
        parser.error("--section is only valid with --mode selective")
    if args.since and mode is not SessionMode.INCREMENTAL:
        parser.error("--since is only valid with --mode incremental")

    session = DocSession()
    try:
        outcome = session.run(
            args.path,
            mode=mode,
            sections=sections or None,
            since=args.since,
            persist=False if args.no_save else None,
        )
    except ValueError as exc:
        # Unknown section ids surface here once impact overrides are known.
        parser.error(str(exc))

    if args.format == "json":
        print(json.dumps(to_payload(outcome), indent=2))
    elif outcome.completed:
        print(ReportRenderer().render(outcome), end="")

    if not outcome.completed:
        parser.exit(1, f"{outcome.error}\n")


def _run_snapshot(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    outcome = DocSession().run(args.path, mode=SessionMode.FULL, persist=False)
    if not outcome.completed or outcome.store is None:
        parser.exit(1, f"{outcome.error}\n")
    destination = args.output or _default_snapshot_path(Path(args.path))
    SnapshotStore(destination).save(outcome.store)
    print(f"Snapshot with {len(outcome.store)} facts written to {_relativize(destination)}")


def _default_snapshot_path(root: Path) -> Path:
    try:
        return load_config(root / CONFIG_FILENAME).snapshot_path
    except ConfigError:
        return DocFactsConfig(root=root.resolve()).snapshot_path


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
