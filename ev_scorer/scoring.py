"""Multi-criteria desirability score for saved listings.

Each criterion is normalized to [0, 1] and the weighted mean is scaled to
0-100. Price, odometer, range, year and length are normalized against the
minimum and maximum of the whole collection, so scores move when listings
are added or removed; they are recomputed on demand and never stored.
Trim level, distance and damage use fixed scales; heat pump and remote
start map straight to constants.
"""
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import math

from .models import Listing, DEFAULT_RANGE, DEFAULT_LENGTH, DEFAULT_TRIM_LEVEL, DEFAULT_DISTANCE, DEFAULT_DAMAGE

CRITERIA = (
    'price', 'odo', 'range', 'year', 'trimLevel',
    'distance', 'remoteStart', 'length', 'damage', 'heatPump',
)
# lower is better
INVERTED = frozenset({'price', 'odo', 'length', 'damage', 'distance'})
# normalized against the collection
RELATIVE = ('price', 'odo', 'range', 'year', 'length')
FIXED_SCALES = {
    'trimLevel': (1, 5),
    'distance': (1, 10),
    'damage': (0, 5),
}
REMOTE_START_SCORES = {
    'Fob, App': 1.0,
    'App': 0.7,
    'Fob': 0.5,
}

Bounds = Dict[str, Tuple[float, float]]


def criterion_value(listing: Listing, criterion: str) -> Optional[float]:
    """Raw value of a numeric criterion, defaulted; None when it cannot take part in min/max."""
    if criterion == 'price':
        return listing.price if listing.price and listing.price > 0 else None
    if criterion == 'odo':
        return listing.odometer if listing.odometer is not None and listing.odometer >= 0 else None
    if criterion == 'range':
        return listing.range if listing.range and listing.range > 0 else DEFAULT_RANGE
    if criterion == 'year':
        return listing.year if listing.year and listing.year > 0 else None
    if criterion == 'length':
        return listing.length if listing.length and listing.length > 0 else DEFAULT_LENGTH
    if criterion == 'trimLevel':
        return listing.trim_level or DEFAULT_TRIM_LEVEL
    if criterion == 'distance':
        return listing.distance or DEFAULT_DISTANCE
    if criterion == 'damage':
        return listing.damage if listing.damage and listing.damage > 0 else DEFAULT_DAMAGE
    raise KeyError(criterion)


def collection_bounds(collection: Sequence[Listing]) -> Bounds:
    """Min and max of each collection-relative criterion.

    A criterion with no usable value anywhere gets an empty (0, 0) range,
    which scores like a tie.
    """
    bounds: Bounds = {}
    for criterion in RELATIVE:
        values = [v for v in (criterion_value(l, criterion) for l in collection) if v is not None]
        bounds[criterion] = (min(values), max(values)) if values else (0, 0)
    return bounds


def normalize(value: Optional[float], low: float, high: float, invert: bool = False) -> float:
    if high == low:
        return 1.0 if invert else 0.5
    if value is None:
        # unusable values sit at the worst end of the range
        value = high if invert else low
    norm = (value - low) / (high - low)
    norm = min(1.0, max(0.0, norm))
    return 1.0 - norm if invert else norm


def criterion_scores(listing: Listing, bounds: Bounds) -> Dict[str, float]:
    scores: Dict[str, float] = {}
    for criterion in RELATIVE:
        low, high = bounds[criterion]
        scores[criterion] = normalize(criterion_value(listing, criterion), low, high, criterion in INVERTED)
    for criterion, (low, high) in FIXED_SCALES.items():
        scores[criterion] = normalize(criterion_value(listing, criterion), low, high, criterion in INVERTED)
    scores['heatPump'] = 1.0 if listing.heat_pump else 0.0
    scores['remoteStart'] = REMOTE_START_SCORES.get(listing.remote_start or '', 0.0)
    return scores


def _weight(weights: Mapping[str, float], criterion: str) -> float:
    try:
        w = float(weights.get(criterion) or 0)
    except (TypeError, ValueError):
        return 0.0
    return w if w > 0 and math.isfinite(w) else 0.0


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def weighted_score(scores: Mapping[str, float], weights: Mapping[str, float]) -> int:
    total_weight = sum(_weight(weights, c) for c in CRITERIA)
    if total_weight <= 0:
        return 0
    total = sum(scores.get(c, 0.0) * _weight(weights, c) for c in CRITERIA)
    return max(0, min(100, _round_half_up(100 * total / total_weight)))


def score(collection: Sequence[Listing], weights: Mapping[str, float], target: Listing) -> int:
    """Score `target` from 0 to 100 relative to `collection`.

    An empty collection scores 0. With a single listing (or any tie) the
    collection-relative criteria score 1.0 when lower is better and 0.5
    otherwise.
    """
    if not collection:
        return 0
    bounds = collection_bounds(collection)
    return weighted_score(criterion_scores(target, bounds), weights or {})


def score_collection(collection: Sequence[Listing], weights: Mapping[str, float]) -> List[int]:
    """Scores for every listing in `collection`, in order."""
    if not collection:
        return []
    bounds = collection_bounds(collection)
    return [weighted_score(criterion_scores(l, bounds), weights or {}) for l in collection]


def rank(collection: Sequence[Listing], weights: Mapping[str, float]) -> List[Tuple[Listing, int]]:
    """Listings paired with their scores, best first; ties keep collection order."""
    scored = list(zip(collection, score_collection(collection, weights)))
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
