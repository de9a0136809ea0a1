# FILE: recursive_search/cli.py
"""
Command line entry point.

Usage:
    recursive-search search --subscription <uuid> --resource-group <rg>
        --storage-account <account> --file-share <share> --target-item <name>
        [--search-scope FileShare|FileShareSnapshots|Both]
        [--match-behavior End|ScopeEnd|Continue]

Matches go to stdout, logs and error payloads to stderr.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Callable, List, Optional, Tuple

from dotenv import load_dotenv

from . import __version__
from .config import Settings, load_settings
from .errors import RecursiveSearchError
from .models import MatchBehavior, SearchScope
from .remote import RemoteDirectoryAdapter, ScopeCatalog
from .schemas import SearchRequest, parse_search_request
from .search import SearchOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

CollaboratorFactory = Callable[[SearchRequest, Settings], Tuple[ScopeCatalog, RemoteDirectoryAdapter]]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recursive-search",
        description="Recursively search an Azure file share (and its snapshots) for a named item.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search a file share for a file or directory by name")
    search.add_argument(
        "--subscription",
        required=True,
        metavar="SUBSCRIPTION_ID",
        help="The subscription ID containing the target file share.",
    )
    search.add_argument(
        "--resource-group",
        required=True,
        metavar="RESOURCE_GROUP_NAME",
        help="The resource group containing the target file share.",
    )
    search.add_argument(
        "--storage-account",
        required=True,
        metavar="STORAGE_ACCOUNT_NAME",
        help="The storage account containing the target file share.",
    )
    search.add_argument(
        "--file-share",
        required=True,
        metavar="FILE_SHARE_NAME",
        help="The name of the file share to search.",
    )
    search.add_argument(
        "--target-item",
        required=True,
        metavar="TARGET_ITEM_NAME",
        help="The item (file or directory) to search for.",
    )
    search.add_argument(
        "--search-scope",
        default=SearchScope.BOTH.value,
        metavar="SCOPE",
        help="The scope over which to search: FileShare, FileShareSnapshots, or Both (default).",
    )
    search.add_argument(
        "--match-behavior",
        default=MatchBehavior.SCOPE_END.value,
        metavar="MATCH_BEHAVIOR",
        help="Behavior when a match is found: End, ScopeEnd (default), or Continue.",
    )
    search.add_argument("--cache-path", default=None, help="Override the cache database location.")
    search.add_argument("--json", action="store_true", help="Print one JSON object per match.")
    search.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    return parser


def _azure_collaborators(request: SearchRequest, settings: Settings):
    # Azure SDK is only imported once a request has validated
    from .remote.azure import build_azure_collaborators

    return build_azure_collaborators(
        str(request.subscription),
        request.resource_group,
        request.storage_account,
        page_size=settings.list_page_size,
    )


def _print_error(error: RecursiveSearchError) -> None:
    print(json.dumps(error.to_dict(), default=str), file=sys.stderr)


def run_search(args: argparse.Namespace, collaborators: CollaboratorFactory) -> int:
    try:
        settings = load_settings(args.cache_path)
        configure_logging("DEBUG" if args.verbose else settings.log_level)

        request = parse_search_request({
            "subscription": args.subscription,
            "resource_group": args.resource_group,
            "storage_account": args.storage_account,
            "file_share": args.file_share,
            "target_item": args.target_item,
            "search_scope": args.search_scope,
            "match_behavior": args.match_behavior,
        })
        catalog, adapter = collaborators(request, settings)
        orchestrator = SearchOrchestrator(catalog, adapter, settings=settings)
        for match in orchestrator.search(request):
            print(json.dumps(match.to_dict()) if args.json else str(match), flush=True)
    except RecursiveSearchError as e:
        logger.debug("[cli] Search failed", exc_info=True)
        _print_error(e)
        return EXIT_FAILURE

    return EXIT_OK


def main(
    argv: Optional[List[str]] = None,
    collaborators: CollaboratorFactory = _azure_collaborators,
) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    if args.command == "search":
        return run_search(args, collaborators)
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
