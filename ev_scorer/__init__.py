"""ev_scorer package init.

Collects vehicle listings from car-marketplace pages into one canonical
record and ranks saved listings with a weighted multi-criteria score.

A warnings filter silences the DeprecationWarning emitted by
BeautifulSoup's lxml builder on some versions of lxml; every adapter
parses pages with the lxml backend.
"""
import warnings

# Message text varies between lxml versions, so match a substring.
warnings.filterwarnings(
    "ignore",
    category=DeprecationWarning,
    message=r".*strip_cdata.*",
)

__version__ = '1.0.0'
