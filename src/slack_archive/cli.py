from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .api import API, SlackAPI
from .cache import CacheStore
from .config import DEFAULT_LIMIT, Settings
from .errors import SlackArchiveError
from .formatter import format_messages, wrap_in_details
from .history import fetch_history
from .models import Channel, IdentifierCache
from .permalink import format_permalink, parse_permalink
from .resolver import DirectoryResolver, IdentityResolver, UserResolver

console = Console(stderr=True)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slack-archive",
        description="Archive a Slack thread or channel window as Markdown.",
    )
    parser.add_argument(
        "link",
        nargs="?",
        help="Slack message permalink (https://<team>.slack.com/archives/...).",
    )
    parser.add_argument("--team", help="Workspace subdomain, when no link is given.")
    parser.add_argument(
        "--channel", help="Channel name to read from, when no link is given."
    )
    parser.add_argument(
        "--since", help="Timestamp of the first message, when no link is given."
    )
    parser.add_argument(
        "--thread", default="", help="Thread root timestamp, when no link is given."
    )
    parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Maximum number of messages to fetch (default: {DEFAULT_LIMIT}).",
    )
    parser.add_argument(
        "--details",
        action="store_true",
        help="Wrap the transcript in a collapsible <details> block.",
    )
    parser.add_argument(
        "--no-resolve",
        action="store_true",
        help="Show user IDs instead of looking up user names.",
    )
    parser.add_argument(
        "--cache",
        type=Path,
        help="Identifier cache file (default: $SLACK_ARCHIVE_CACHE or the user data dir).",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the Markdown to this file instead of stdout.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log more detail (repeatable).",
    )
    return parser


def archive(
    api: API,
    users: UserResolver,
    channel_id: str,
    since: str,
    thread: str = "",
    limit: int = DEFAULT_LIMIT,
    channel_info: Callable[[str], Channel] | None = None,
    details_link: str = "",
) -> str:
    """Fetch and render one conversation.

    With ``details_link`` the transcript is wrapped for embedding, labelled
    with the channel name looked up through ``channel_info``.
    """
    history = fetch_history(api, channel_id, since, thread, limit)
    markdown = format_messages(users, history)
    if details_link:
        name = channel_info(channel_id).name if channel_info else ""
        markdown = wrap_in_details(name or channel_id, details_link, markdown)
    return markdown


def main(argv: list[str] | None = None) -> None:
    """Archive a Slack conversation as Markdown."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.link and not (args.team and args.channel and args.since):
        parser.error("give a permalink, or --team, --channel and --since")

    settings = Settings.from_env()
    if args.cache:
        settings.cache_path = args.cache

    if not settings.token or not settings.cookie:
        console.print(
            "[red bold]Error:[/] SLACK_TOKEN and SLACK_COOKIE must be set."
        )
        raise SystemExit(1)

    try:
        channel_id = ""
        if args.link:
            link = parse_permalink(args.link)
            team, channel_id = link.team, link.channel_id
            since, thread = link.timestamp, link.thread_ts
        else:
            team, since, thread = args.team, args.since, args.thread

        api = SlackAPI(team, settings.token, settings.cookie)
        # Nothing is looked up by name in this mode, so the cache is not read.
        cache = IdentifierCache() if args.no_resolve and channel_id else None
        resolver = DirectoryResolver(api, CacheStore(settings.cache_path), cache)

        with console.status("Fetching conversation..."):
            if not channel_id:
                channel_id = resolver.resolve_channel_id(args.channel)

            details_link = ""
            if args.details:
                details_link = args.link or format_permalink(
                    team, channel_id, since, thread
                )

            markdown = archive(
                api,
                IdentityResolver() if args.no_resolve else resolver,
                channel_id,
                since,
                thread,
                args.limit,
                channel_info=resolver.channel_info,
                details_link=details_link,
            )
    except SlackArchiveError as exc:
        console.print(f"[red bold]Error:[/] {escape(str(exc))}", highlight=False)
        raise SystemExit(1) from exc

    output: Path | None = args.output
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(markdown, encoding="utf-8")
        console.print(f"[green]✓[/] Wrote {output}")
    else:
        print(markdown)
