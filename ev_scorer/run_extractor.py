"""Command-line entry point.

    python -m ev_scorer.run_extractor extract listing.html --page-url https://www.autotrader.ca/a/...
    python -m ev_scorer.run_extractor extract https://www.clutch.ca/vehicles/... --render --save
    python -m ev_scorer.run_extractor rank
    python -m ev_scorer.run_extractor export backup.json
    python -m ev_scorer.run_extractor import backup.json
    python -m ev_scorer.run_extractor catalog Tesla

Saved listings live in MongoDB (see `ev_scorer.db.mongo_store` for the
connection variables).
"""
from pathlib import Path
from typing import List, Optional
import argparse
import asyncio
import json
import logging
import sys

import httpx

from .catalog import catalog_makes, catalog_models, find_vehicle_match, get_vehicle_specs, specs_as_dict
from .config import MODES
from .engine import ExtractionEngine
from .errors import EVScorerError
from .exchange import default_export_name, read_import, write_export
from .page import Page
from .pipeline import STATUS_SAVED, capture, load_page
from .service import MessageService

logger = logging.getLogger(__name__)


def _open_service() -> MessageService:
    from .db.mongo_store import MongoListingStore
    return MessageService(MongoListingStore())


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _load(source: str, page_url: Optional[str], render: bool) -> Page:
    path = Path(source)
    if path.exists():
        return Page.from_file(path, page_url or source)
    if render:
        return asyncio.run(load_page(source))
    response = httpx.get(source, follow_redirects=True, timeout=30)
    response.raise_for_status()
    return Page(page_url or str(response.url), response.text)


def cmd_extract(args) -> int:
    page = _load(args.source, args.page_url, args.render)
    if args.save:
        service = _open_service()
        mode_source = (lambda: args.mode) if args.mode else service.mode_source
        engine = ExtractionEngine(mode_source=mode_source)
        result = asyncio.run(capture(page, engine, service))
        _print_json({
            'status': result.status,
            'car': result.listing.to_dict() if result.listing else None,
        })
        return 0 if result.status == STATUS_SAVED else 1

    engine = ExtractionEngine()
    _print_json(engine.page_data(page, mode=args.mode))
    return 0


def cmd_rank(args) -> int:
    service = _open_service()
    scores = service.handle({'type': 'GET_SCORES'})['scores']
    if not scores:
        print('No saved listings.')
        return 0
    for pos, row in enumerate(scores, start=1):
        print(f"{pos:>3}. {row['score']:>3}  {row['title'] or '?'}  {row['url']}")
    return 0


def cmd_export(args) -> int:
    service = _open_service()
    target = Path(args.file or default_export_name())
    write_export(target, service.handle({'type': 'EXPORT_DATA'}))
    print(f'Exported to {target}')
    return 0


def cmd_import(args) -> int:
    service = _open_service()
    result = service.handle({'type': 'IMPORT_DATA', 'data': read_import(Path(args.file))})
    if not result.get('success'):
        print(f"Import failed: {result.get('error')}", file=sys.stderr)
        return 1
    print(f"Imported {result['count']} listings")
    return 0


def cmd_catalog(args) -> int:
    if not args.make:
        for make in catalog_makes():
            print(make)
        return 0
    match = find_vehicle_match(args.make, '')
    if match is None:
        print(f'Unknown make: {args.make}', file=sys.stderr)
        return 1
    _print_json({m: specs_as_dict(get_vehicle_specs(match.make, m)) for m in catalog_models(match.make)})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='ev_scorer', description='Extract and rank vehicle listings')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('extract', help='Extract a listing from a URL or saved HTML file')
    p.add_argument('source', help='Listing URL or path to a saved HTML page')
    p.add_argument('--page-url', help='URL the saved HTML was served from')
    p.add_argument('--mode', choices=MODES, help='Override the detection mode')
    p.add_argument('--render', action='store_true', help='Load the URL in headless Chrome (slow)')
    p.add_argument('--save', action='store_true', help='Save the listing to the collection')
    p.set_defaults(func=cmd_extract)

    p = sub.add_parser('rank', help='Print saved listings by score')
    p.set_defaults(func=cmd_rank)

    p = sub.add_parser('export', help='Write a backup of listings and weights')
    p.add_argument('file', nargs='?', help='Output path (default: dated file name)')
    p.set_defaults(func=cmd_export)

    p = sub.add_parser('import', help='Replace the collection with a backup')
    p.add_argument('file')
    p.set_defaults(func=cmd_import)

    p = sub.add_parser('catalog', help='List catalog makes, or one make\'s models and specs')
    p.add_argument('make', nargs='?')
    p.set_defaults(func=cmd_catalog)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    try:
        return args.func(args)
    except (EVScorerError, httpx.HTTPError, OSError) as e:
        logger.error('%s failed: %s', args.command, e)
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
