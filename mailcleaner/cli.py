#!/usr/bin/env python3
"""
Mail Cleaner CLI - run a category cleanup from the terminal
"""

import argparse
import asyncio
import os
import signal
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from mailcleaner.cleaner import CategoryCleaner
from mailcleaner.config import Settings, configure_logging
from mailcleaner.errors import AuthError, MailCleanerError
from mailcleaner.gmail_service import GmailClient
from mailcleaner.models import Category, CleanSummary
from mailcleaner.pacing import FixedDelayPacer


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Empty Gmail categories (and optionally the trash)')
    parser.add_argument(
        '--token',
        default=os.getenv('GMAIL_ACCESS_TOKEN'),
        help='OAuth2 access token (default: $GMAIL_ACCESS_TOKEN)'
    )
    parser.add_argument(
        '--category',
        dest='categories',
        action='append',
        required=True,
        choices=[c.value for c in Category],
        help='Category label to clean; repeat for several, processed in order'
    )
    parser.add_argument(
        '--max-per-category',
        type=int,
        default=0,
        help='Cap per category; 0 means no cap'
    )
    parser.add_argument('--yes', action='store_true', help='Do not ask before permanently deleting TRASH')
    return parser


def confirm_permanent_delete() -> bool:
    """Ask before emptying the trash"""
    answer = console.input("[red]TRASH threads will be deleted permanently. Continue? (yes/no) [/red]")
    return answer.strip().lower() in {'yes', 'y'}


def render_summary(summary: CleanSummary) -> Table:
    table = Table(title="Cleanup Summary")
    table.add_column("Category", style="cyan")
    table.add_column("Removed", justify="right", style="green")
    table.add_column("Action")

    for label, count in summary.per_category_deleted.items():
        action = "permanently deleted" if label == Category.TRASH.value else "moved to trash"
        table.add_row(label, f"{count:,}", action)

    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total_deleted:,}[/bold]", "")
    return table


async def run_cleanup(cleaner: CategoryCleaner, categories: List[str], max_per_category: int) -> CleanSummary:
    async def show_progress(event: str, data: dict):
        if event == "category_started":
            console.print(f"[blue]Cleaning {data['category']}...[/blue]")
        elif event == "category_completed":
            console.print(f"[green]{data['category']}: {data['deleted']:,} removed[/green]")

    cleaner.progress_callback = show_progress
    cleaner.lister.progress_callback = show_progress
    return await cleaner.clean('me', categories, max_per_category)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.token:
        parser.error('an access token is required (--token or GMAIL_ACCESS_TOKEN)')
    if args.max_per_category < 0:
        parser.error('--max-per-category must be >= 0')

    settings = Settings()
    configure_logging(settings.log_level)

    if Category.TRASH.value in args.categories and not args.yes and not confirm_permanent_delete():
        console.print("[yellow]Aborted.[/yellow]")
        return 1

    cleaner = CategoryCleaner(
        GmailClient.from_access_token(args.token),
        FixedDelayPacer(settings.rate_limit_delay)
    )

    def handle_interrupt(signum, frame):
        """Handle Ctrl+C gracefully"""
        if not cleaner.interrupted:
            console.print("\n[yellow]Interrupt received. Stopping after the current thread...[/yellow]")
            cleaner.interrupt()
        else:
            console.print("\n[red]Force quit requested. Exiting immediately.[/red]")
            sys.exit(1)

    signal.signal(signal.SIGINT, handle_interrupt)

    try:
        summary = asyncio.run(run_cleanup(cleaner, args.categories, args.max_per_category))
    except AuthError as e:
        console.print(f"[red]Authentication failed: {e}[/red]")
        console.print("Please re-authenticate with the required Gmail scopes")
        return 2
    except MailCleanerError as e:
        console.print(f"[red]Cleanup failed: {e}[/red]")
        return 1

    console.print(render_summary(summary))
    style = "green" if summary.completed else "yellow"
    console.print(f"[{style}]{summary.reason}[/{style}]")
    return 0


def serve() -> None:
    """Run the web API with uvicorn"""
    from mailcleaner.main import serve as serve_app

    serve_app()


if __name__ == '__main__':
    sys.exit(main())
