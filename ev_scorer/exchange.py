"""Backup document format for saved listings and weights.

    {"version": "1.0.0", "exportedAt": "<ISO-8601>", "cars": [...], "weights": {...}}
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from datetime import datetime, timezone
import json
from pathlib import Path

from .config import EXPORT_VERSION, default_weights
from .errors import InvalidImportError
from .models import Listing


def build_export(cars: Sequence[Listing], weights: Mapping[str, float]) -> Dict[str, Any]:
    return {
        'version': EXPORT_VERSION,
        'exportedAt': datetime.now(timezone.utc).isoformat(),
        'cars': [car.to_dict() for car in cars],
        'weights': dict(weights),
    }


def parse_import(doc: Any) -> Tuple[List[Listing], Dict[str, float]]:
    """Validate an import document and return (cars, weights).

    Raises InvalidImportError when the document has no `cars`. Missing
    weights fall back to the defaults.
    """
    if not isinstance(doc, Mapping) or doc.get('cars') is None:
        raise InvalidImportError('Invalid import data: missing "cars"')
    cars_raw = doc['cars']
    if not isinstance(cars_raw, list):
        raise InvalidImportError('Invalid import data: "cars" must be a list')

    cars: List[Listing] = []
    for i, item in enumerate(cars_raw):
        if not isinstance(item, Mapping):
            raise InvalidImportError(f'Invalid import data: car #{i} is not an object')
        cars.append(Listing.from_dict(dict(item)))

    weights_raw = doc.get('weights')
    weights = dict(weights_raw) if isinstance(weights_raw, Mapping) and weights_raw else default_weights()
    return cars, weights


def write_export(path: Path, doc: Dict[str, Any]) -> None:
    Path(path).write_text(json.dumps(doc, indent=2), encoding='utf-8')


def read_import(path: Path) -> Dict[str, Any]:
    try:
        return json.loads(Path(path).read_text(encoding='utf-8'))
    except json.JSONDecodeError as exc:
        raise InvalidImportError(f'Invalid import data: {exc}') from exc


def default_export_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f'ev-scorer-backup-{now.date().isoformat()}.json'
