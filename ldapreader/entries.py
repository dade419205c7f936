"""
Entries, attribute values and the cursor that walks them across pages.
"""

import enum
import logging
from typing import TYPE_CHECKING

from .exceptions import LdapReaderError, NoCurrentEntryError
from .typing import LDAPAttributes

if TYPE_CHECKING:
    from .paging import PagedSearch

logger = logging.getLogger(__name__)


class AttributeValues(list):
    """
    The values of one attribute of one entry, in the order the server sent
    them.

    This is a copy owned by the caller, not a view into the entry.  Release it
    with :py:meth:`release` when done, or use it as a context manager::

        with entry.get_attribute("memberOf") as groups:
            for group in groups.as_strings():
                ...
    """

    def __init__(self, name: str, values=()) -> None:
        super().__init__(values)
        self.name = name
        self.released = False

    def __repr__(self) -> str:
        if self.released:
            return f"<AttributeValues {self.name} released>"
        return f"<AttributeValues {self.name} {list.__repr__(self)}>"

    def __enter__(self) -> "AttributeValues":
        return self

    def __exit__(self, *args) -> None:
        self.release()

    def as_strings(self, encoding: str = "utf-8") -> list[str]:
        return [value.decode(encoding) for value in self]

    def release(self) -> None:
        """
        Drop the values.  Releasing an already released set does nothing.
        """
        if self.released:
            return
        self.clear()
        self.released = True


class Entry:
    """
    One directory object from a result page.

    Attribute names are matched case-insensitively, as LDAP does.

    Args:
        dn: the distinguished name of the object
        attributes: the attribute dict python-ldap returned for it

    """

    def __init__(self, dn: str, attributes: LDAPAttributes) -> None:
        self.dn = dn
        self._attributes: LDAPAttributes | None = attributes
        self._names: dict[str, str] = {name.lower(): name for name in attributes}

    def __repr__(self) -> str:
        state = "" if self.is_valid else " discarded"
        return f"<Entry {self.dn}{state}>"

    @property
    def is_valid(self) -> bool:
        return self._attributes is not None

    @property
    def attribute_names(self) -> list[str]:
        return list(self._names.values())

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self._names

    def get_attribute(self, name: str) -> AttributeValues:
        """
        Return the values of attribute ``name``.

        Args:
            name: the attribute name, in any case

        Raises:
            NoCurrentEntryError: this entry's page has already been replaced

        Returns:
            The values, or an empty set if the entry lacks the attribute.

        """
        if self._attributes is None:
            msg = f"Entry {self.dn} belongs to a page that has been discarded"
            raise NoCurrentEntryError(msg)
        key = self._names.get(name.lower())
        if key is None:
            return AttributeValues(name)
        return AttributeValues(name, self._attributes[key])

    def discard(self) -> None:
        self._attributes = None
        self._names = {}


class CursorState(enum.Enum):
    NO_RESULT = "no result"
    AT_ENTRY = "at entry"
    EXHAUSTED = "exhausted"


class EntryCursor:
    """
    Walks the entries of a query one at a time, pulling in the next page from
    the :py:class:`ldapreader.paging.PagedSearch` when the current one runs
    out.  Only one page of entries is held at any time.

    Args:
        search: the engine whose current query we walk

    """

    def __init__(self, search: "PagedSearch") -> None:
        self.search = search
        self.entry: Entry | None = None
        self._index = -1
        self._page = search.result_set
        self._request = search.request
        self.state = CursorState.NO_RESULT

    def __repr__(self) -> str:
        return f"<EntryCursor {self.state.value} index={self._index}>"

    def fetch(self) -> bool:
        """
        Advance to the next entry.

        Raises:
            SearchError: fetching the next page failed; the query is dropped
                and the cursor goes back to ``NO_RESULT``

        Returns:
            ``True`` if :py:attr:`entry` now holds an entry, ``False`` once the
            query has no more entries (and on every call after that).

        """
        if self.search.request is not self._request:
            # a newer query replaced the one we were walking
            self._page = None
        if self.state is CursorState.EXHAUSTED or self._page is None:
            self.entry = None
            return False
        while True:
            self._index += 1
            if self._index < len(self._page):
                self.entry = self._page[self._index]
                self.state = CursorState.AT_ENTRY
                return True
            self.entry = None
            try:
                fetched = self.search.fetch_next_page()
            except LdapReaderError:
                self._page = None
                self.state = CursorState.NO_RESULT
                raise
            if not fetched:
                self.state = CursorState.EXHAUSTED
                logger.debug(
                    "cursor.exhausted pages=%d", self.search.pages_fetched
                )
                return False
            # Servers may send empty pages with a cookie; keep going until
            # there are entries or no more pages
            self._page = self.search.result_set
            self._index = -1
            if self._page is None:
                self.state = CursorState.NO_RESULT
                return False
