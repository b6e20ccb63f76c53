"""CLI entrypoint."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from showfinder import config
from showfinder.geometry import Coordinate
from showfinder.http import RequestMetrics, StoreError
from showfinder.models import SearchFilter
from showfinder.reporting import render_summary, response_to_dict, write_json_object
from showfinder.search import search
from showfinder.store import SupabaseStore


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def _split_csv(value: Optional[str]) -> Optional[list]:
    if not value:
        return None
    items = [v.strip() for v in value.split(",") if v.strip()]
    return items or None


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find shows near a location")
    parser.add_argument("--lat", type=float, default=None, help="Center latitude")
    parser.add_argument("--lng", type=float, default=None, help="Center longitude")
    parser.add_argument("--radius", type=float, default=None, help="Radius in miles (default: 25)")
    parser.add_argument("--start", type=str, default=None, help="Window start date (default: today)")
    parser.add_argument("--end", type=str, default=None, help="Window end date, exclusive (default: start + 30d)")
    parser.add_argument("--max-fee", type=float, default=None)
    parser.add_argument("--categories", type=str, default=None, help="Comma-separated, any may match")
    parser.add_argument("--features", type=str, default=None, help="Comma-separated, all must be present")
    parser.add_argument("--status", type=str, default=None)
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--config", type=str, default=None, help="Path to search_config.json")
    parser.add_argument("--out", type=str, default=None, help="Write the page as JSON to this path")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def build_filter(args: argparse.Namespace) -> SearchFilter:
    center = None
    if args.lat is not None or args.lng is not None:
        if args.lat is None or args.lng is None:
            raise ValueError("--lat and --lng must be given together")
        center = Coordinate(args.lat, args.lng)
    return SearchFilter(
        center=center,
        radius=args.radius,
        start_date=args.start,
        end_date=args.end,
        max_entry_fee=args.max_fee,
        categories=_split_csv(args.categories),
        features=_split_csv(args.features),
        status=args.status,
        page=args.page,
        page_size=args.page_size,
    )


def main(argv: Optional[list] = None) -> int:
    load_env()
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config.load_search_config(args.config)

    try:
        search_filter = build_filter(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    metrics = RequestMetrics()
    try:
        store = SupabaseStore.from_env(metrics=metrics)
    except StoreError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    response = search(search_filter, store, metrics=metrics)
    for line in render_summary(response, metrics):
        print(line)
    if args.out:
        write_json_object(args.out, response_to_dict(response))
        print(f"Done. Results written to {args.out}")
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
