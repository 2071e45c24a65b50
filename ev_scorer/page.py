"""The page an adapter reads: its URL plus the HTML it was served or rendered as."""
from typing import Iterable, Optional
from pathlib import Path
from urllib.parse import urlparse
import re
import warnings
import bs4
from bs4 import BeautifulSoup, Tag
from packaging.version import parse as parse_version

_WS_RE = re.compile(r'\s+')


def make_soup(html: str) -> BeautifulSoup:
    """Parse HTML using BeautifulSoup with lxml backend.

    Suppresses the DeprecationWarning lxml's HTMLParser emits about the
    'strip_cdata' option under BeautifulSoup 4.12+.
    """
    bs_version = getattr(bs4, '__version__', None) or '0'
    if parse_version(bs_version) >= parse_version('4.12'):
        with warnings.catch_warnings():
            warnings.filterwarnings(
                "ignore",
                category=DeprecationWarning,
                message=r".*The 'strip_cdata' option of HTMLParser.*",
                module=r".*_lxml.*",
            )
            return BeautifulSoup(html, 'lxml')
    return BeautifulSoup(html, 'lxml')


class Page:
    """Read-only view of one loaded page.

    The soup is built on first use and cached; adapters never modify it.
    """

    def __init__(self, url: str, html: str):
        self.url = url or ''
        self.html = html or ''
        self._soup: Optional[BeautifulSoup] = None
        parsed = urlparse(self.url)
        self.scheme = parsed.scheme or 'https'
        self.netloc = parsed.netloc
        self.path = parsed.path or '/'

    @classmethod
    def from_file(cls, file_path: Path, url: str) -> 'Page':
        html = Path(file_path).read_text(encoding='utf-8', errors='ignore')
        return cls(url, html)

    @property
    def hostname(self) -> str:
        host = (urlparse(self.url).hostname or '').lower()
        return host[4:] if host.startswith('www.') else host

    @property
    def origin(self) -> str:
        return f'{self.scheme}://{self.netloc}' if self.netloc else ''

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = make_soup(self.html)
        return self._soup

    def select_first(self, selectors: Iterable[str]) -> Optional[Tag]:
        """Return the first element matched by the first selector that matches anything."""
        for sel in selectors:
            el = self.soup.select_one(sel)
            if el is not None:
                return el
        return None

    def first_text(self, selectors: Iterable[str]) -> str:
        """Text of the first selector whose element has non-blank text."""
        for sel in selectors:
            el = self.soup.select_one(sel)
            txt = self.text(el)
            if txt:
                return txt
        return ''

    @staticmethod
    def text(el: Optional[Tag]) -> str:
        if el is None:
            return ''
        return _WS_RE.sub(' ', el.get_text(' ')).strip()

    @property
    def body_text(self) -> str:
        body = self.soup.body or self.soup
        return self.text(body)

    def __repr__(self) -> str:
        return f'Page({self.url!r})'
