"""CLI entry point for the quick-apply automation."""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date

from autoapply.browser.session import BrowserSession
from autoapply.core.config import Settings
from autoapply.core.db import init_db
from autoapply.core.errors import ConfigurationError, QuotaExceededError
from autoapply.core.schemas import TargetQuery
from autoapply.core.store import PersistenceStore
from autoapply.pipeline.context import ControlCommand, write_control
from autoapply.pipeline.quota_manager import QuotaManager
from autoapply.pipeline.scheduler import (
    Segment,
    SegmentScheduler,
    iter_segments,
    validate_campaigns,
)
from autoapply.platforms.linkedin.searcher import LinkedInSearchVocabulary

LOGIN_URL = "https://www.linkedin.com/login"


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Quick-apply automation - iterate search segments and submit applications",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- run subcommand ---
    run_parser = subparsers.add_parser("run", help="Start or resume an apply run")
    _add_common(run_parser)
    run_parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue from the persisted cursor instead of the first segment",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the segment plan and quota without launching a browser",
    )

    # --- control subcommands ---
    for name, help_text in (
        ("pause", "Pause the running process at its next suspension point"),
        ("resume", "Resume a paused run"),
        ("stop", "Stop the running process and discard its cursor"),
    ):
        _add_common(subparsers.add_parser(name, help=help_text))

    # --- status / history ---
    _add_common(subparsers.add_parser("status", help="Show the cursor and today's quota"))
    history_parser = subparsers.add_parser("history", help="List submitted applications")
    _add_common(history_parser)
    history_parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Day to list as YYYY-MM-DD (default: today)",
    )
    history_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export records to format (json)",
    )

    # --- login subcommand ---
    login_parser = subparsers.add_parser(
        "login", help="Open a browser to log in manually and save the session cookies",
    )
    _add_common(login_parser)

    # --- extract-profile subcommand ---
    extract_parser = subparsers.add_parser(
        "extract-profile",
        help="Build the profile YAML from a resume (PDF, TXT or MD)",
    )
    extract_parser.add_argument(
        "--resume",
        required=True,
        help="Path to resume file",
    )
    extract_parser.add_argument(
        "--output",
        default="config/profile.yaml",
        help="Output path for profile YAML (default: config/profile.yaml)",
    )
    extract_parser.add_argument(
        "--provider",
        default="gemini",
        choices=["anthropic", "openai", "gemini", "ollama"],
        help="LLM provider for resume analysis (default: gemini)",
    )
    extract_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def open_store(settings: Settings) -> PersistenceStore:
    return PersistenceStore(init_db(settings.database.path))


def dry_run(settings: Settings) -> None:
    """Print the segment plan without launching a browser."""
    validate_campaigns(settings.campaigns)
    store = open_store(settings)
    quota = QuotaManager(store, settings.quota)
    vocabulary = LinkedInSearchVocabulary()

    segments = list(iter_segments(settings.campaigns))
    total_minutes = sum(s.duration_ms for s in segments) / 60_000
    print(f"[DRY RUN] {len(segments)} segments, {total_minutes:.0f} min per cycle")
    for s in segments:
        print(
            f"  [{s.campaign_index}.{s.workplace_index}.{s.type_index}.{s.location_index}] "
            f"'{s.keyword}' / {s.workplace.name or 'any workplace'} / "
            f"{s.job_type.name or 'any type'} / {s.location.name or 'any location'}: "
            f"{s.duration_ms / 60_000:.1f} min",
        )
        print(f"      {_segment_url(vocabulary, s)}")
    print(
        f"[DRY RUN] Quota: {quota.applied_today()}/{quota.limit} applications today "
        f"({quota.remaining()} remaining)",
    )
    store.conn.close()


def _segment_url(vocabulary: LinkedInSearchVocabulary, segment: Segment) -> str:
    return vocabulary.build_url(
        TargetQuery(
            keyword=segment.keyword,
            location=segment.location.name,
            job_type_code=vocabulary.job_type_code(segment.job_type.name),
            workplace_code=vocabulary.workplace_code(segment.workplace.name),
        ),
    )


async def run(settings: Settings, resume: bool) -> None:
    """Run the apply pipeline with a real browser."""
    from autoapply.ai import get_provider
    from autoapply.ai.client import AIClient
    from autoapply.pipeline.orchestrator import Orchestrator
    from autoapply.platforms.linkedin.adapter import LinkedInAdapter
    from autoapply.profile.schema import ProfileData

    profile = ProfileData.from_yaml(settings.profile_path)
    ai = AIClient(
        get_provider(settings.ai.provider),
        model=settings.ai.model,
        timeout_s=settings.ai.timeout_s,
    )
    store = open_store(settings)
    scheduler = SegmentScheduler(
        store, LinkedInSearchVocabulary(), loop_mode=settings.loop_mode,
    )

    try:
        async with BrowserSession(settings.browser) as session:
            adapter = LinkedInAdapter(session.page)
            orchestrator = Orchestrator(settings, store, adapter, scheduler, ai, profile)
            summary = await orchestrator.run(resume=resume)
    finally:
        store.conn.close()

    state = "stopped" if summary.stopped else "completed" if summary.completed else "ended"
    print(
        f"\nRun {state}: {summary.segments} segment(s), {summary.items_seen} item(s) seen, "
        f"{summary.submitted} submitted ({summary.duplicates} already in the ledger), "
        f"{summary.skipped} skipped, {summary.failed} failed.",
    )


def cmd_control(settings: Settings, command: ControlCommand) -> None:
    """Handle pause/resume/stop subcommands."""
    store = open_store(settings)
    write_control(store, command)
    store.conn.close()
    print(f"Sent '{command.value}' to the running process")


def cmd_status(settings: Settings) -> None:
    """Handle status subcommand."""
    store = open_store(settings)
    scheduler = SegmentScheduler(store, LinkedInSearchVocabulary())
    quota = QuotaManager(store, settings.quota)
    cursor = scheduler.load()
    if cursor is None:
        print("No run in progress")
    else:
        segment = scheduler.current_segment()
        state = "paused" if cursor.paused else "running"
        remaining = max(scheduler.remaining_budget(), 0) / 60_000
        print(
            f"Run {state}: '{segment.keyword}' / {segment.workplace.name or 'any workplace'} / "
            f"{segment.job_type.name or 'any type'} / {segment.location.name or 'any location'}",
        )
        print(f"  Segment time left: {remaining:.1f} min")
    print(
        f"Quota: {quota.applied_today()}/{quota.limit} applications today "
        f"({quota.remaining()} remaining)",
    )
    store.conn.close()


def cmd_history(settings: Settings, day: date | None, export_format: str | None) -> None:
    """Handle history subcommand."""
    store = open_store(settings)
    records = store.applied_records(day)
    store.conn.close()

    if export_format == "json":
        print(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return

    print(f"{len(records)} application(s) on {(day or date.today()).isoformat()}")
    for r in records:
        score = f" (score {r.match_score})" if r.match_score is not None else ""
        print(f"  {r.submitted_at:%H:%M} '{r.title}' @ {r.company}{score}")


async def cmd_login(settings: Settings) -> None:
    """Handle login subcommand: cookies are saved when the session closes."""
    browser = settings.browser.model_copy(
        update={"start_url": LOGIN_URL, "save_cookies_on_exit": True},
    )
    async with BrowserSession(browser):
        await asyncio.to_thread(
            input, "\n>>> Log in to LinkedIn, then press Enter here to save cookies...",
        )
    print(f"Cookies saved to {browser.cookies_path}")


def cmd_extract_profile(args: argparse.Namespace) -> None:
    """Handle extract-profile subcommand."""
    from autoapply.ai import get_provider
    from autoapply.ai.client import AIClient
    from autoapply.profile.analyzer import analyze_resume
    from autoapply.profile.extractor import extract_resume_text

    print(f"Extracting text from {args.resume}...")
    text = extract_resume_text(args.resume)
    print(f"Extracted {len(text)} characters.")

    print(f"Analyzing resume with {args.provider} provider...")
    client = AIClient(get_provider(args.provider))
    profile = asyncio.run(analyze_resume(text, client))
    profile.to_yaml(args.output)
    print(f"Profile written to {args.output}")
    print(f"  Name: {profile.name}")
    print(f"  Email: {profile.email}")
    print(f"  City: {profile.city}")
    print("Review the profile and then run: python main.py run")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "extract-profile":
        from autoapply.core.errors import AIUnavailableError

        try:
            cmd_extract_profile(args)
        except (FileNotFoundError, ImportError, ValueError, AIUnavailableError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command in ("pause", "resume", "stop"):
        cmd_control(settings, ControlCommand(args.command))
    elif args.command == "status":
        cmd_status(settings)
    elif args.command == "history":
        cmd_history(settings, args.date, args.export)
    elif args.command == "login":
        asyncio.run(cmd_login(settings))
    else:
        try:
            if args.dry_run:
                dry_run(settings)
            else:
                asyncio.run(run(settings, args.resume))
        except ConfigurationError as e:
            print(f"Error in {e.settings_hint}: {e}", file=sys.stderr)
            sys.exit(1)
        except QuotaExceededError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except (FileNotFoundError, ImportError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
