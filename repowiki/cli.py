"""CLI entrypoints for repowiki commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .errors import PipelineError
from .logging import configure_logging
from .models import AnalyzeOutcome, ChatMessage
from .orchestrator import Orchestrator
from .qa import QAAssistant, context_from_record


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repowiki",
        description="Generate cited, feature-oriented wiki pages for a GitHub repository.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help="Directory containing .repowiki.yml (defaults to current directory).",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Console log format; json emits one object per line.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also append JSON log lines to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a repository at its default branch head.")
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument("repo", help="GitHub URL or owner/repo shorthand.")
    analyze_parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Ignore any cached result for the current head commit.",
    )
    analyze_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory to write one markdown file per page plus result.json.",
    )

    show_parser = subparsers.add_parser("show", help="Print the latest cached analysis for a repository.")
    _add_verbose_option(show_parser, suppress_default=True)
    show_parser.add_argument("owner")
    show_parser.add_argument("repo")

    recent_parser = subparsers.add_parser("recent", help="List recently analyzed repositories.")
    _add_verbose_option(recent_parser, suppress_default=True)
    recent_parser.add_argument("--limit", type=int, default=3)

    ask_parser = subparsers.add_parser(
        "ask", help="Ask a question about a repository using its cached analysis."
    )
    _add_verbose_option(ask_parser, suppress_default=True)
    ask_parser.add_argument("owner")
    ask_parser.add_argument("repo")
    ask_parser.add_argument("question")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repowiki commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=args.log_file,
        json_format=args.log_format == "json",
        include_server=args.command == "serve",
    )

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    orchestrator = Orchestrator(config)

    try:
        if args.command == "analyze":
            outcome = orchestrator.run_analyze(args.repo, force_refresh=bool(args.force_refresh))
            if args.output is not None:
                _write_output(outcome, args.output)
                print(f"Wrote {len(outcome.record.result.wiki_pages)} pages to {args.output}")
            else:
                print(json.dumps(outcome.to_dict(), indent=2))
        elif args.command == "show":
            outcome = orchestrator.load_cached(args.owner, args.repo)
            print(json.dumps(outcome.to_dict(), indent=2))
        elif args.command == "recent":
            for record in orchestrator.list_recent(args.limit):
                print(f"{record.owner}/{record.repo}\t{record.head_sha[:7]}\t{record.created_at}")
        elif args.command == "ask":
            _ask(orchestrator, QAAssistant(config), args.owner, args.repo, args.question)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except PipelineError as exc:
        parser.exit(
            1,
            f"repowiki {args.command} failed: {exc.message} [{exc.code}]\nRun with --verbose for more details.\n",
        )


def _ask(orchestrator: Orchestrator, assistant: QAAssistant, owner: str, repo: str, question: str) -> None:
    record = orchestrator.load_cached(owner, repo).record
    chunks = assistant.stream_answer(
        [ChatMessage(role="user", content=question)], context_from_record(record)
    )
    for chunk in chunks:
        sys.stdout.write(chunk)
        sys.stdout.flush()
    sys.stdout.write("\n")


def _write_output(outcome: AnalyzeOutcome, directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for page in outcome.record.result.wiki_pages:
        (directory / f"{page.subsystem_id}.md").write_text(
            f"# {page.subsystem_name}\n\n{page.markdown.strip()}\n", encoding="utf-8"
        )
    (directory / "result.json").write_text(json.dumps(outcome.to_dict(), indent=2), encoding="utf-8")


if __name__ == "__main__":
    main(sys.argv[1:])
