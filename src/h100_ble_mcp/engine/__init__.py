"""Saved-data fetch state machine."""

from .pagination import PaginationController
from .session import FetchError, FetchSession, FetchState
