"""Runtime configuration.

Values come from environment variables with conservative defaults, the
same way the Mongo store is configured. Default weights and settings are
the ones a fresh collection starts with.
"""
import os
from typing import Dict, Any

MODE_EV = 'ev'
MODE_ALL = 'all'
MODES = (MODE_EV, MODE_ALL)

MODE = os.environ.get('EV_SCORER_MODE', MODE_ALL)
# seconds to let dynamically rendered content settle before extraction
SETTLE_DELAY = float(os.environ.get('EV_SCORER_SETTLE_DELAY', '1.0'))
THUMBNAIL_TIMEOUT = float(os.environ.get('EV_SCORER_THUMBNAIL_TIMEOUT', '5.0'))
THUMBNAIL_SIZE = int(os.environ.get('EV_SCORER_THUMBNAIL_SIZE', '200'))
THUMBNAIL_LIMIT = int(os.environ.get('EV_SCORER_THUMBNAIL_LIMIT', '3'))

EXPORT_VERSION = '1.0.0'

DEFAULT_WEIGHTS: Dict[str, float] = {
    'price': 35,
    'odo': 16,
    'range': 12,
    'year': 10,
    'trimLevel': 10,
    'distance': 10,
    'remoteStart': 10,
    'length': 10,
    'damage': 5,
    'heatPump': 5,
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    'autoDetect': True,
    'showOverlay': True,
    'notifyPriceDrops': True,
    'mode': MODE,
}


def default_weights() -> Dict[str, float]:
    return dict(DEFAULT_WEIGHTS)


def default_settings() -> Dict[str, Any]:
    return dict(DEFAULT_SETTINGS)


def resolve_mode(value: Any) -> str:
    """Return `value` when it names a known mode, else the configured one."""
    if isinstance(value, str) and value.strip().lower() in MODES:
        return value.strip().lower()
    return MODE if MODE in MODES else MODE_ALL
