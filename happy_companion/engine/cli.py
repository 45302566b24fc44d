"""CLI entry point for inspecting companion session state.

Usage:
    happy-companion markers
    happy-companion session <session-id>
    happy-companion resume              # most recent Codex transcript
    happy-companion resume <id-or-path>
    happy-companion resume --last
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from happy_companion.engine.config import CompanionConfig
from happy_companion.engine.errors import InvalidSelectionError, ResumeNotFoundError
from happy_companion.engine.yaml_config import load_default_config, load_yaml_config
from happy_companion.shared.services.codex_resume import RESUME_MOST_RECENT, CodexResumeResolver
from happy_companion.shared.services.session_registry import (
    PersistedSessionStore,
    SessionMarkerRegistry,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="happy-companion",
        description="Inspect daemon session markers, persisted sessions and Codex resume context",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="YAML config file (default: <home>/companion.yaml if present)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("markers", help="List live session markers for this home directory")

    session = sub.add_parser("session", help="Show a persisted session (key material omitted)")
    session.add_argument("session_id")

    resume = sub.add_parser("resume", help="Build resume context from a Codex transcript")
    which = resume.add_mutually_exclusive_group()
    which.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Transcript path or Codex session id (default: most recent)",
    )
    which.add_argument(
        "--last",
        action="store_true",
        help="Use the most recent transcript without prompting",
    )
    return parser


def _load_config(path: str | None) -> CompanionConfig:
    if path:
        return load_yaml_config(path)
    return load_default_config()


async def _run(args: argparse.Namespace, config: CompanionConfig) -> int:
    if args.command == "markers":
        markers = await SessionMarkerRegistry(config).list_markers()
        print(json.dumps([m.to_dict() for m in markers], indent=2))
        return 0

    if args.command == "session":
        record = await PersistedSessionStore(config).read(args.session_id)
        if record is None:
            print(f"Error: No persisted session: {args.session_id}", file=sys.stderr)
            return 1
        payload = record.to_dict()
        payload.pop("encryptionKeyBase64", None)
        print(json.dumps(payload, indent=2))
        return 0

    # --last takes the newest transcript even on a terminal
    resolver = CodexResumeResolver(config, interactive=False if args.last else None)
    target = RESUME_MOST_RECENT if args.last or not args.target else args.target
    try:
        context = await resolver.resume(target)
    except (ResumeNotFoundError, InvalidSelectionError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(context.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    # Configure logging (config loading logs its overrides)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    config = _load_config(args.config)
    if not args.verbose:
        logging.getLogger().setLevel(
            getattr(logging, config.log_level.upper(), logging.INFO)
        )

    try:
        code = asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
