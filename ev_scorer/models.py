"""Canonical listing record shared by adapters, stores and scoring."""
import logging
from dataclasses import dataclass, field, asdict, fields, replace
from typing import List, Dict, Any, Optional

from .utils.schema_normalizer import SchemaNormalizer

logger = logging.getLogger(__name__)

DEFAULT_RANGE = 400
DEFAULT_LENGTH = 170
DEFAULT_TRIM_LEVEL = 2
DEFAULT_DISTANCE = 5
DEFAULT_DAMAGE = 0
MAX_PHOTOS = 10

# attribute name -> key in stored/exported documents
_DOC_KEYS = {
    'odometer': 'odo',
    'trim_level': 'trimLevel',
    'heat_pump': 'heatPump',
    'remote_start': 'remoteStart',
    'is_ev': 'isEV',
    'deal_rating': 'dealRating',
    'added_at': 'addedAt',
    'price_history': 'priceHistory',
    'original_photo_urls': 'originalPhotoUrls',
}
_ATTR_KEYS = {v: k for k, v in _DOC_KEYS.items()}
# accepted spellings when loading documents from other tools
_ATTR_KEYS['odometer'] = 'odometer'


@dataclass
class Listing:
    """One vehicle for sale, normalized across marketplaces.

    `url` is the identity of a listing within a collection. Fields after
    `is_ev` are owned by the collection store and stay at their defaults
    while a record only exists as an extraction result.
    """

    url: str = ''
    source: str = ''
    year: int = 0
    make: str = ''
    model: str = ''
    trim: str = ''
    price: int = 0
    odometer: int = 0
    range: int = DEFAULT_RANGE
    length: int = DEFAULT_LENGTH
    trim_level: int = DEFAULT_TRIM_LEVEL
    distance: int = DEFAULT_DISTANCE
    damage: int = DEFAULT_DAMAGE
    heat_pump: bool = True
    remote_start: Optional[str] = None
    dealer: str = ''
    location: str = ''
    photos: List[str] = field(default_factory=list)
    vin: str = ''
    color: str = ''
    deal_rating: str = ''
    is_ev: bool = False

    id: Optional[Any] = None
    added_at: Optional[str] = None
    starred: bool = False
    price_history: List[Dict[str, Any]] = field(default_factory=list)
    original_photo_urls: List[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        parts = [str(self.year) if self.year else '', self.make, self.model, self.trim]
        return ' '.join(p for p in parts if p)

    def with_defaults(self) -> 'Listing':
        """Copy with non-positive scoring inputs replaced by their defaults."""
        return replace(
            self,
            range=self.range if self.range and self.range > 0 else DEFAULT_RANGE,
            length=self.length if self.length and self.length > 0 else DEFAULT_LENGTH,
            trim_level=self.trim_level or DEFAULT_TRIM_LEVEL,
            distance=self.distance or DEFAULT_DISTANCE,
            damage=self.damage if self.damage and self.damage > 0 else DEFAULT_DAMAGE,
            heat_pump=True if self.heat_pump is None else bool(self.heat_pump),
            photos=list(self.photos or [])[:MAX_PHOTOS],
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for key, value in asdict(self).items():
            out[_DOC_KEYS.get(key, key)] = value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Listing':
        """Build a listing from a stored or imported document.

        Unknown keys (such as Mongo's `_id`) are dropped and numeric
        fields go through the schema normalizer, so documents written by
        hand or by older exports still load.
        """
        normalized, issues = SchemaNormalizer.normalize(dict(data or {}))
        if issues:
            logger.debug('Normalization issues for %s: %s', data.get('url'), issues)

        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in normalized.items():
            attr = _ATTR_KEYS.get(key, key)
            if attr not in names or value is None:
                continue
            kwargs[attr] = value

        for text_field in ('url', 'source', 'make', 'model', 'trim', 'dealer', 'location', 'vin', 'color', 'deal_rating'):
            if text_field in kwargs:
                kwargs[text_field] = SchemaNormalizer.normalize_text(kwargs[text_field])
        for list_field in ('photos', 'price_history', 'original_photo_urls'):
            if list_field in kwargs and not isinstance(kwargs[list_field], list):
                kwargs[list_field] = []
        for bool_field in ('is_ev', 'starred'):
            if bool_field in kwargs:
                kwargs[bool_field] = bool(kwargs[bool_field])
        return cls(**kwargs)
