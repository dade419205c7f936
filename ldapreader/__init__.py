"""
Read-only LDAP searches with transparent simple paged results.
"""

from .connection import DirectoryConnection
from .credentials import CredentialStore, Credentials
from .entries import AttributeValues, CursorState, Entry, EntryCursor
from .exceptions import (
    BindError,
    ConnectError,
    LdapReaderError,
    NoCurrentEntryError,
    SearchError,
    TooManyAttributesError,
)
from .paging import PagedSearch, PageState, ResultSet, SearchRequest, SearchState
from .reader import LdapReader

__version__ = "1.0.0"

__all__ = [
    "AttributeValues",
    "BindError",
    "ConnectError",
    "CredentialStore",
    "Credentials",
    "CursorState",
    "DirectoryConnection",
    "Entry",
    "EntryCursor",
    "LdapReader",
    "LdapReaderError",
    "NoCurrentEntryError",
    "PageState",
    "PagedSearch",
    "ResultSet",
    "SearchError",
    "SearchRequest",
    "SearchState",
    "TooManyAttributesError",
]
