"""Shared parsing utilities for site adapters.

Helpers for the structured-data blocks marketplaces embed (schema.org
JSON-LD, Next.js `__NEXT_DATA__`, inline script assignments) and for the
photo URL clean-up every DOM fallback applies.
"""
from typing import List, Dict, Any, Optional, Iterable, Sequence, Callable
import json
import html as _html
import logging
import re
from urllib.parse import urljoin
from bs4 import BeautifulSoup, Tag

from ..models import MAX_PHOTOS

logger = logging.getLogger(__name__)

# Pre-compiled regex for performance (avoid recompilation)
_RE_JSON_ASSIGN = re.compile(r'={1}\s*({[\s\S]+})')

PHOTO_ATTRS = ('src', 'srcset', 'data-src', 'data-lazy', 'data-srcset')
PHOTO_EXCLUDE = ('placeholder', 'data:image')


def extract_jsonld_objects(soup: BeautifulSoup) -> List[Dict[str, Any]]:
    """Every JSON object found in `application/ld+json` scripts, flattened.

    Arrays and `@graph` containers are expanded so callers see one node
    per entry. Blobs that do not parse are skipped.
    """
    out: List[Dict[str, Any]] = []
    for tag in soup.find_all('script', type='application/ld+json'):
        raw = tag.string or tag.get_text() or ''
        try:
            data = json.loads(_html.unescape(raw))
        except (json.JSONDecodeError, ValueError):
            # try to extract a JSON object from an assignment (window.__STATE__ = {...})
            m = _RE_JSON_ASSIGN.search(raw)
            if not m:
                logger.debug('Skipping invalid JSON-LD blob')
                continue
            try:
                data = json.loads(m.group(1))
            except (json.JSONDecodeError, ValueError):
                logger.debug('Skipping invalid JSON-LD assignment')
                continue

        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            graph = item.get('@graph')
            if isinstance(graph, list):
                out.extend(node for node in graph if isinstance(node, dict))
            else:
                out.append(item)
    return out


def jsonld_type_names(node: Dict[str, Any]) -> List[str]:
    """Lowercase local names of a node's `@type` (IRIs split on / and #)."""
    t = node.get('@type')
    if isinstance(t, str):
        types = [t]
    elif isinstance(t, list):
        types = [x for x in t if isinstance(x, str)]
    else:
        return []
    return [x.split('/')[-1].split('#')[-1].lower() for x in types]


def find_jsonld_node(soup: BeautifulSoup, type_names: Iterable[str]) -> Optional[Dict[str, Any]]:
    wanted = {t.lower() for t in type_names}
    for node in extract_jsonld_objects(soup):
        if any(t in wanted for t in jsonld_type_names(node)):
            return node
    return None


def jsonld_text(node: Any) -> str:
    """Plain text of a JSON-LD value that may be a string or a named object."""
    if node is None:
        return ''
    if isinstance(node, str):
        return node.strip()
    if isinstance(node, dict):
        return jsonld_text(node.get('name') or node.get('@value') or node.get('value'))
    if isinstance(node, list):
        return jsonld_text(node[0]) if node else ''
    return str(node).strip()


def jsonld_value(node: Any) -> Any:
    """Unwrap a QuantitativeValue-style `{value: ...}` node."""
    if isinstance(node, dict):
        return node.get('value') if 'value' in node else node.get('@value')
    return node


def first_offer(node: Dict[str, Any]) -> Dict[str, Any]:
    offers = node.get('offers') or {}
    if isinstance(offers, list):
        offers = offers[0] if offers else {}
    return offers if isinstance(offers, dict) else {}


def dig(obj: Any, path: Sequence[str]) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def extract_next_data(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    """The parsed Next.js `__NEXT_DATA__` blob, or None."""
    tag = soup.find('script', id='__NEXT_DATA__')
    if tag is None:
        return None
    raw = tag.string or tag.get_text() or ''
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.debug('Skipping invalid __NEXT_DATA__ blob: %s', exc)
        return None
    return data if isinstance(data, dict) else None


def extract_script_assignment(soup: BeautifulSoup, names: Sequence[str]) -> Optional[Dict[str, Any]]:
    """Find `name = {...}` or `name: {...}` inside inline scripts and parse the object.

    The object may not contain a semicolon; pages that inline bigger
    state objects are covered by the structured-data paths instead.
    """
    pattern = re.compile(r'(?:%s)\s*[=:]\s*({[^;]+})' % '|'.join(re.escape(n) for n in names))
    for tag in soup.find_all('script'):
        text = tag.string or tag.get_text() or ''
        if not any(n in text for n in names):
            continue
        m = pattern.search(text)
        if not m:
            continue
        try:
            data = json.loads(m.group(1))
        except (json.JSONDecodeError, ValueError) as exc:
            logger.debug('Skipping unparsable script assignment: %s', exc)
            continue
        if isinstance(data, dict):
            return data
    return None


def absolute_url(src: str, page_url: str) -> str:
    src = src.strip()
    if src.startswith('//'):
        return 'https:' + src
    return urljoin(page_url, src)


def image_source(el: Tag, attrs: Sequence[str] = PHOTO_ATTRS) -> Optional[str]:
    """First usable URL on an <img>/<source>; srcset-style values keep their first URL."""
    for attr in attrs:
        val = el.get(attr)
        if isinstance(val, list):
            val = ' '.join(val)
        if not val or not val.strip():
            continue
        return val.strip().split(' ')[0].rstrip(',')
    return None


def clean_photos(
    urls: Iterable[Any],
    page_url: str,
    exclude: Sequence[str] = PHOTO_EXCLUDE,
    rewrite: Optional[Callable[[str], str]] = None,
) -> List[str]:
    """Absolute, de-duplicated photo URLs without placeholders, capped at MAX_PHOTOS."""
    out: List[str] = []
    for raw in urls:
        if isinstance(raw, dict):
            raw = raw.get('url') or raw.get('src') or raw.get('contentUrl')
        if not isinstance(raw, str) or not raw.strip():
            continue
        src = raw.strip()
        if 'data:image' in src:
            continue
        try:
            src = absolute_url(src, page_url)
        except ValueError as exc:
            logger.debug('Skipping malformed photo url %r: %s', src, exc)
            continue
        if rewrite is not None:
            src = rewrite(src)
        lowered = src.lower()
        if any(token in lowered for token in exclude):
            continue
        if not lowered.startswith('http'):
            continue
        out.append(src)
    # dedupe while preserving order
    return list(dict.fromkeys(out))[:MAX_PHOTOS]


def collect_photos(
    soup: BeautifulSoup,
    selectors: Sequence[str],
    page_url: str,
    attrs: Sequence[str] = PHOTO_ATTRS,
    exclude: Sequence[str] = PHOTO_EXCLUDE,
    rewrite: Optional[Callable[[str], str]] = None,
) -> List[str]:
    """Photos from the first selector in `selectors` that yields usable images."""
    for sel in selectors:
        elements = soup.select(sel)
        if not elements:
            continue
        srcs = [image_source(el, attrs) for el in elements]
        photos = clean_photos(srcs, page_url, exclude=exclude, rewrite=rewrite)
        if photos:
            return photos
    return []


def photo_list(value: Any) -> List[Any]:
    if not value:
        return []
    return value if isinstance(value, list) else [value]
