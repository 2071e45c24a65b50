"""Exception types raised by the collection store and import path."""


class EVScorerError(Exception):
    """Base class for errors raised by ev_scorer."""


class InvalidImportError(EVScorerError):
    """An import document is missing required fields."""


class ListingNotFoundError(EVScorerError):
    """No saved listing has the requested id."""


class DuplicateListingError(EVScorerError):
    """A listing with the same url is already saved."""

    def __init__(self, url: str):
        super().__init__(f'listing already saved: {url}')
        self.url = url
