from __future__ import annotations

import re
from datetime import datetime
from typing import Dict, Any, Tuple, List, Optional


# Pre-compiled regex for performance
_NON_DIGIT_RE = re.compile(r'[^0-9]')
_LEADING_INT_RE = re.compile(r'\s*([0-9]+)')
_YEAR_RE = re.compile(r'(19\d{2}|20\d{2})')
_VIN_RE = re.compile(r'[A-HJ-NPR-Z0-9]{17}', re.I)
_WS_RE = re.compile(r'\s+')

# Cache current year to avoid repeated datetime calls
_CURRENT_YEAR = datetime.now().year

REMOTE_START_VALUES = ('Fob', 'App', 'Fob, App')


class SchemaNormalizer:
    """Normalize raw page values into the canonical listing types.

    Methods are conservative: they return None when a value cannot be
    confidently normalized and leave defaulting to the caller.
    """

    @classmethod
    def normalize_int(cls, value: Any) -> Optional[int]:
        """Strip every non-digit character and parse what is left."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        digits = _NON_DIGIT_RE.sub('', str(value))
        if not digits:
            return None
        try:
            return int(digits)
        except (ValueError, OverflowError):
            return None

    @classmethod
    def normalize_leading_int(cls, value: Any) -> Optional[int]:
        """Parse the leading integer of a structured-data value ('32995.00' -> 32995)."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        m = _LEADING_INT_RE.match(str(value))
        return int(m.group(1)) if m else None

    @classmethod
    def normalize_year(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            year = int(value)
        else:
            s = str(value).strip()
            if not s:
                return None
            m = _YEAR_RE.search(s)
            if not m:
                return None
            year = int(m.group(1))
        if 1900 <= year <= _CURRENT_YEAR + 2:
            return year
        return None

    @classmethod
    def normalize_vin(cls, value: Any) -> Optional[str]:
        if not value:
            return None
        m = _VIN_RE.search(str(value))
        return m.group(0).upper() if m else None

    @classmethod
    def normalize_remote_start(cls, value: Any) -> Optional[str]:
        if not value or not isinstance(value, str):
            return None
        parts = [p.strip().lower() for p in value.split(',') if p.strip()]
        has_fob = 'fob' in parts
        has_app = 'app' in parts
        if has_fob and has_app:
            return 'Fob, App'
        if has_app:
            return 'App'
        if has_fob:
            return 'Fob'
        return None

    @classmethod
    def normalize_bool(cls, value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if value is None:
            return None
        if isinstance(value, (int, float)):
            return bool(value)
        s = str(value).strip().lower()
        if s in ('true', 'yes', '1', 'y'):
            return True
        if s in ('false', 'no', '0', 'n'):
            return False
        return None

    @classmethod
    def normalize_text(cls, value: Any) -> str:
        if value is None:
            return ''
        return _WS_RE.sub(' ', str(value)).strip()

    @classmethod
    def normalize(cls, record: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """Normalize known fields on a stored record and return (normalized, issues)."""
        issues: List[str] = []
        out = dict(record)

        for field, normalizer in (
            ('year', cls.normalize_year),
            ('price', cls.normalize_int),
            ('odo', cls.normalize_int),
            ('odometer', cls.normalize_int),
            ('range', cls.normalize_int),
            ('length', cls.normalize_int),
            ('trimLevel', cls.normalize_int),
            ('distance', cls.normalize_int),
            ('damage', cls.normalize_int),
            ('heatPump', cls.normalize_bool),
            ('remoteStart', cls.normalize_remote_start),
            ('vin', cls.normalize_vin),
        ):
            if field not in record:
                continue
            original = record.get(field)
            normalized = normalizer(original)
            if normalized is None and original not in (None, ''):
                issues.append(f'{field}:unparsed')
            out[field] = normalized

        return out, issues


# Convenience wrapper functions

def parse_int(txt: Any, default: int = 0) -> int:
    """Digits-only integer parse; `default` when nothing numeric is present."""
    val = SchemaNormalizer.normalize_int(txt)
    return val if val is not None else default


def parse_leading_int(txt: Any, default: int = 0) -> int:
    val = SchemaNormalizer.normalize_leading_int(txt)
    return val if val is not None else default


def parse_year(txt: Any) -> Optional[int]:
    return SchemaNormalizer.normalize_year(txt)


def parse_vin(txt: Any) -> str:
    return SchemaNormalizer.normalize_vin(txt) or ''


def clean_text(txt: Any) -> str:
    return SchemaNormalizer.normalize_text(txt)


__all__ = [
    'SchemaNormalizer', 'REMOTE_START_VALUES',
    'parse_int', 'parse_leading_int', 'parse_year', 'parse_vin', 'clean_text',
]
