#!/usr/bin/env python3
"""
run.py – CLI entry-point for Story2Test.

Usage:
    python run.py --id 12345
    python run.py --id 12345 --data-dictionary fields.txt --doc brd.txt --dry-run
    python run.py --id 12345 --upload-only --plan 42 --suite 43
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from ado_client import ADOClient
from case_generator import CaseGenerator
from config import Settings
from csv_export import write_csv
from errors import Story2TestError
from llm_client import LLMClient
from merge_engine import MergeMode, has_generated, merge, resolve_mode
from models import GenerationInput, SupportingDocument, TestCase, UploadStatus, UserStory
from session import DEFAULT_SESSION_FILE, Session
from upload_summary import summarize_upload
from uploader import UploadOrchestrator

console = Console()
logger = logging.getLogger("story2test")

STATUS_STYLE = {
    UploadStatus.PENDING: "dim",
    UploadStatus.SUCCESS: "green",
    UploadStatus.FAILED: "red",
}

# ── Logging ─────────────────────────────────────────────────────────────

def _configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, markup=True)],
    )


# ── Pretty output helpers ──────────────────────────────────────────────

def _show_story(story: UserStory) -> None:
    console.print(
        Panel(
            f"[bold cyan]{escape(story.title)}[/]\n\n"
            f"[dim]URL:[/] {story.url or '—'}\n\n"
            f"[bold]Acceptance Criteria[/]\n{escape(story.acceptance_criteria) or '[dim]None[/]'}",
            title=f"User Story #{story.id}",
            border_style="blue",
        )
    )


def _show_cases(cases: list[TestCase]) -> None:
    table = Table(title="Test Cases", show_lines=True)
    table.add_column("ID", style="bold", width=18)
    table.add_column("Title")
    table.add_column("Pri", width=7)
    table.add_column("Origin", width=10)
    table.add_column("Status", width=9)
    table.add_column("ADO", width=8)

    for tc in cases:
        table.add_row(
            escape(tc.id),
            escape(tc.title),
            tc.priority,
            tc.origin.value,
            f"[{STATUS_STYLE[tc.upload_status]}]{tc.upload_status.value}[/]",
            str(tc.azure_devops_id or "—"),
        )
    console.print(table)


def _read_text(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return Path(path).read_text(encoding="utf-8")


def _ask_merge_mode() -> MergeMode:
    choice = Prompt.ask(
        "AI-generated test cases already exist. [bold]Append[/] (update by id) or "
        "[bold]replace[/] them? Manual test cases are always kept",
        choices=[m.value for m in MergeMode],
        default=MergeMode.APPEND.value,
    )
    return MergeMode(choice)


# ── Core orchestration ─────────────────────────────────────────────────

def generate_phase(session: Session, args: argparse.Namespace, llm: LLMClient) -> None:
    """Generate a batch and merge it into the session."""
    story = session.story
    data = GenerationInput(
        story_title=story.title,
        acceptance_criteria=story.acceptance_criteria,
        data_dictionary=_read_text(args.data_dictionary),
        documents=[
            SupportingDocument(name=Path(p).name, text=Path(p).read_text(encoding="utf-8"))
            for p in args.doc
        ],
    )
    batch = CaseGenerator(llm).generate(data)

    requested = MergeMode(args.mode) if args.mode else None
    if requested is None and has_generated(session.test_cases):
        requested = _ask_merge_mode()
    mode = resolve_mode(session.test_cases, requested)

    session.test_cases = merge(session.test_cases, batch, mode)
    console.print(f"  Generated [cyan]{len(batch)}[/] test cases ({mode.value}).\n")


def upload_phase(session: Session, args: argparse.Namespace, ado: ADOClient, llm: LLMClient) -> None:
    def _progress(position: int, total: int, tc: TestCase) -> None:
        console.print(f"  [dim]({position}/{total})[/] Uploading {escape(tc.id)}: {escape(tc.title)}")

    orchestrator = UploadOrchestrator(ado, on_progress=_progress)
    report = orchestrator.upload(session.test_cases, args.plan, args.suite)
    summary = report.summary

    border = "green" if summary.failure_count == 0 else "yellow"
    if summary.attempted and summary.success_count == 0:
        border = "red"
    console.print(
        Panel(
            f"[green bold]Uploaded:[/]  {summary.success_count}\n"
            f"[red bold]Failed:[/]    {summary.failure_count}\n"
            f"[dim]Skipped (already uploaded):[/]  {summary.skipped_count}"
            + ("\n\n" + escape("\n".join(summary.error_messages)) if summary.error_messages else ""),
            title=f"Upload to Suite {args.suite}",
            border_style=border,
        )
    )

    if not summary.attempted:
        return
    try:
        text = summarize_upload(summary, llm)
    except Story2TestError as exc:
        logger.warning("Could not get upload summary from the model: %s", exc)
        return
    console.print(f"[italic]{escape(text.summary)} {escape(text.progress)}[/]")


def run(args: argparse.Namespace) -> Session:
    """End-to-end pipeline: Fetch → Generate → Merge → Export → Upload."""
    session_path = Path(args.session)
    session = Session.load(session_path)
    ado = ADOClient(Settings.ado_credentials())
    llm = LLMClient.from_settings()

    # ── Phase 1: Fetch ──────────────────────────────────────────────
    console.rule("[bold blue]Phase 1 · Fetch User Story")
    session.start_story(ado.get_user_story(args.id))
    if args.criteria:
        session.story.acceptance_criteria = _read_text(args.criteria).strip()
    _show_story(session.story)

    for title in args.add_manual:
        session.add_manual(title)

    # ── Phase 2: AI generation ──────────────────────────────────────
    if not args.upload_only:
        console.rule("[bold blue]Phase 2 · Generate Test Cases")
        generate_phase(session, args, llm)
    session.save(session_path)
    _show_cases(session.test_cases)
    console.print(f"  Working set saved to [cyan]{session_path}[/]; edit it and re-run with --upload-only.")

    if args.csv:
        write_csv(args.csv, session.test_cases)
        console.print(f"  CSV written to [cyan]{args.csv}[/]")

    if args.dry_run:
        console.print("\n[yellow bold]DRY RUN[/] – no changes written to ADO.")
        return session

    # ── Phase 3: Push to ADO ────────────────────────────────────────
    console.rule("[bold blue]Phase 3 · Upload to Azure DevOps")
    try:
        upload_phase(session, args, ado, llm)
    finally:
        session.save(session_path)
    _show_cases(session.test_cases)
    return session


# ── CLI ─────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="story2test",
        description="Generate test cases from an Azure DevOps User Story and upload them.",
    )
    parser.add_argument("--id", type=int, required=True, help="Azure DevOps User Story Work-Item ID.")
    parser.add_argument(
        "--session",
        default=DEFAULT_SESSION_FILE,
        help=f"Working-set JSON file (default: {DEFAULT_SESSION_FILE}).",
    )
    parser.add_argument(
        "--criteria", help="Text file replacing the fetched Acceptance Criteria before generation."
    )
    parser.add_argument("--data-dictionary", help="Text file describing the story's data fields.")
    parser.add_argument(
        "--doc", action="append", default=[], help="Plain-text supporting document (repeatable)."
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in MergeMode],
        help="How to merge with existing AI-generated test cases (asked if omitted).",
    )
    parser.add_argument(
        "--add-manual", action="append", default=[], metavar="TITLE",
        help="Add a manual test case with this title (repeatable).",
    )
    parser.add_argument("--plan", default=Settings.ADO_TEST_PLAN_ID, help="Test Plan ID.")
    parser.add_argument("--suite", default=Settings.ADO_TEST_SUITE_ID, help="Static Test Suite ID.")
    parser.add_argument("--csv", help="Also export the working set to this CSV file.")
    parser.add_argument(
        "--upload-only", action="store_true", default=False,
        help="Skip generation and upload the saved working set.",
    )
    parser.add_argument(
        "--dry-run", action="store_true", default=False,
        help="Generate test cases but do NOT push them to ADO.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Enable debug-level logging.")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    _configure_logging(args.verbose)

    console.print(
        Panel(
            "[bold white]Story2Test[/]  –  AI test cases for Azure DevOps User Stories",
            border_style="bright_magenta",
        )
    )

    Settings.validate()

    try:
        run(args)
    except KeyboardInterrupt:
        console.print("\n[red]Aborted by user.[/]")
        sys.exit(130)
    except Story2TestError as exc:
        console.print(f"\n[red bold]Error:[/] {escape(str(exc))}")
        logger.debug("Traceback:", exc_info=True)
        sys.exit(1)
    except Exception as exc:
        console.print(f"\n[red bold]Unexpected error:[/] {escape(str(exc))}")
        logger.debug("Traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
