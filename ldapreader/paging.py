"""
The paged search engine.

This module runs one query as a sequence of RFC 2696 simple paged results
searches.  Each page is a ``search_ext``/``result3`` exchange carrying a
:py:class:`ldap.controls.SimplePagedResultsControl` with the cookie the server
handed back on the previous page; an empty cookie from the server ends the
query.
"""

import enum
import logging
from typing import NamedTuple

from ldap.controls import SimplePagedResultsControl
from ldap_filter import Filter

from ldapreader import conf, ldap

from .connection import DirectoryConnection
from .entries import Entry
from .exceptions import (
    ConnectError,
    SearchError,
    TooManyAttributesError,
    server_message,
)
from .typing import AttributeList, RawSearchData

logger = logging.getLogger(__name__)

#: The filter used when a query does not supply one
MATCH_ALL = Filter.attribute("objectClass").present().to_string()


class SearchState(enum.Enum):
    IDLE = "idle"
    PAGE_REQUESTED = "page requested"
    PAGE_RECEIVED = "page received"
    EXHAUSTED = "exhausted"


class SearchRequest(NamedTuple):
    """
    Everything needed to ask the server for any page of one query.
    """

    base: str
    filterstr: str
    #: ``None`` asks for all user attributes
    attributes: AttributeList | None
    page_size: int
    critical: bool

    @property
    def attrlist(self) -> list[str] | None:
        if self.attributes is None:
            return None
        return list(self.attributes)


class PageState:
    """
    Paging bookkeeping for the query in progress.

    ``result_count`` is whatever size estimate the server put in its paging
    response control.  Servers are free to report 0 there, so it is only ever
    informational.
    """

    def __init__(self) -> None:
        self.cookie: bytes = b""
        self.result_count: int = 0
        self.pages_fetched: int = 0

    def __repr__(self) -> str:
        return (
            f"<PageState pages_fetched={self.pages_fetched} "
            f"more_available={self.more_available} result_count={self.result_count}>"
        )

    @property
    def more_available(self) -> bool:
        return bool(self.cookie)

    def update(self, cookie: bytes | str | None, result_count: int | None) -> None:
        if isinstance(cookie, str):
            cookie = cookie.encode("utf-8")
        self.cookie = cookie or b""
        self.result_count = result_count or 0
        self.pages_fetched += 1


class ResultSet:
    """
    The entries of one page.

    Entries are only good while their page is the current one:
    :py:meth:`discard` drops their attribute data and any later attribute
    access on them raises :py:exc:`ldapreader.exceptions.NoCurrentEntryError`.
    """

    def __init__(self, entries: list[Entry], page_number: int) -> None:
        self.entries = entries
        self.page_number = page_number

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index: int) -> Entry:
        return self.entries[index]

    def discard(self) -> None:
        for entry in self.entries:
            entry.discard()
        self.entries = []


class PagedSearch:
    """
    Runs queries page by page over a :py:class:`DirectoryConnection`.

    State goes ``IDLE -> PAGE_REQUESTED -> PAGE_RECEIVED`` for every page, and
    then either back to ``PAGE_REQUESTED`` for the next one or to ``EXHAUSTED``
    once the server sends an empty cookie.  A failed page drops the whole query
    and returns to ``IDLE``.

    Args:
        connection: the connection to search on

    Keyword Args:
        page_size: entries per page; ``None`` means ``LDAPREADER_PAGE_SIZE``
        critical: mark the paging control critical, so that a server without
            paging support fails the search instead of answering unpaged;
            ``None`` means ``LDAPREADER_PAGING_CRITICAL``
        max_attributes: the most attribute names one query may ask for;
            ``None`` means ``LDAPREADER_MAX_ATTRIBUTES``

    """

    def __init__(
        self,
        connection: DirectoryConnection,
        page_size: int | None = None,
        critical: bool | None = None,
        max_attributes: int | None = None,
    ) -> None:
        self.connection = connection
        self._page_size: int = conf.default_page_size()
        if page_size is not None:
            self.page_size = page_size
        self.critical: bool = (
            critical if critical is not None else conf.default_paging_critical()
        )
        self.max_attributes: int = (
            max_attributes if max_attributes is not None else conf.max_attributes()
        )
        self.state = SearchState.IDLE
        self.request: SearchRequest | None = None
        self.page_state = PageState()
        self.result_set: ResultSet | None = None

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            msg = f"Page size must be a positive integer, not {value!r}"
            raise ValueError(msg)
        self._page_size = value

    @property
    def more_available(self) -> bool:
        return self.page_state.more_available

    @property
    def result_count(self) -> int:
        return self.page_state.result_count

    @property
    def pages_fetched(self) -> int:
        return self.page_state.pages_fetched

    def build_request(
        self,
        filterstr: str | Filter | None,
        base: str,
        attributes: list[str] | tuple[str, ...] | None = None,
    ) -> SearchRequest:
        """
        Validate the query arguments and freeze them into a request.

        Args:
            filterstr: an LDAP filter string or an ``ldap_filter.Filter``;
                ``None`` matches every object
            base: the DN to search under

        Keyword Args:
            attributes: attribute names to return; empty or ``None`` for all

        Raises:
            TooManyAttributesError: more than :py:attr:`max_attributes` names

        Returns:
            The request for this query.

        """
        attrs: AttributeList | None = None
        if attributes:
            if len(attributes) > self.max_attributes:
                msg = (
                    f"Too many attributes requested: {len(attributes)} "
                    f"(at most {self.max_attributes})"
                )
                raise TooManyAttributesError(msg)
            attrs = tuple(attributes)
        if filterstr is None:
            filterstr = MATCH_ALL
        elif isinstance(filterstr, Filter):
            filterstr = filterstr.to_string()
        return SearchRequest(
            base=base,
            filterstr=filterstr,
            attributes=attrs,
            page_size=self.page_size,
            critical=self.critical,
        )

    def query(
        self,
        filterstr: str | Filter | None,
        base: str,
        attributes: list[str] | tuple[str, ...] | None = None,
    ) -> SearchRequest:
        """
        Start a new query and fetch its first page.

        Any previous query is dropped, including its current page of entries.

        Args:
            filterstr: an LDAP filter string or an ``ldap_filter.Filter``;
                ``None`` matches every object
            base: the DN to search under

        Keyword Args:
            attributes: attribute names to return; empty or ``None`` for all

        Raises:
            TooManyAttributesError: more than :py:attr:`max_attributes` names;
                the server is not contacted
            ConnectError: the connection is not initialized
            SearchError: the first page failed

        Returns:
            The request for this query.

        """
        request = self.build_request(filterstr, base, attributes)
        self.discard()
        self.request = request
        logger.debug(
            "search.query base=%s filter=%s attributes=%s",
            request.base,
            request.filterstr,
            request.attributes,
        )
        self._fetch_page()
        return request

    def fetch_next_page(self) -> bool:
        """
        Fetch the next page of the current query, if the server said there is
        one.

        Raises:
            ConnectError: the connection was closed; the query has been
                dropped
            SearchError: the page failed; the query has been dropped

        Returns:
            ``True`` if a page was fetched, ``False`` if the query is exhausted
            (or there is none), in which case the server is not contacted.

        """
        if self.request is None or not self.more_available:
            if self.request is not None:
                self.state = SearchState.EXHAUSTED
            return False
        self._fetch_page()
        return True

    def discard(self) -> None:
        """
        Forget the current query, its paging state and its page of entries.
        """
        if self.result_set is not None:
            self.result_set.discard()
        self.result_set = None
        self.request = None
        self.page_state = PageState()
        self.state = SearchState.IDLE

    def _get_pctrls(self, serverctrls) -> list[SimplePagedResultsControl]:
        """
        Lookup the paged results controls among the returned controls.

        Args:
            serverctrls: List of server controls returned by the LDAP server.

        Returns:
            List of paged results controls.

        """
        # This will also have our returned cookie which we need to make
        # the next search request.
        return [
            c
            for c in serverctrls or []
            if c.controlType == SimplePagedResultsControl.controlType
        ]

    def _entries(self, rdata: RawSearchData) -> list[Entry]:
        entries: list[Entry] = []
        for dn, attrs in rdata:
            # AD returns search references with a list of URLs instead of an
            # attribute dict; we don't chase referrals
            if isinstance(attrs, dict):
                entries.append(Entry(dn or "", attrs))
        return entries

    def _fetch_page(self) -> None:
        request = self.request
        if request is None:
            msg = "No query in progress"
            raise SearchError(msg)
        try:
            ldap_object = self.connection.connection
        except ConnectError:
            self.discard()
            raise
        # A fresh control for every page: the cookie is the only thing carried
        # over from the previous response
        paging = SimplePagedResultsControl(
            request.critical, size=request.page_size, cookie=self.page_state.cookie
        )
        if self.result_set is not None:
            self.result_set.discard()
            self.result_set = None
        self.state = SearchState.PAGE_REQUESTED
        try:
            msgid = ldap_object.search_ext(
                request.base,
                ldap.SCOPE_SUBTREE,  # type: ignore[attr-defined]
                request.filterstr,
                request.attrlist,
                serverctrls=[paging],
                timeout=-1,
                sizelimit=0,
            )
            _rtype, rdata, _rmsgid, serverctrls = ldap_object.result3(msgid)
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            logger.warning(
                "search.failed base=%s page=%d error=%s",
                request.base,
                self.pages_fetched + 1,
                server_message(e),
            )
            self.discard()
            raise SearchError(server_message(e)) from e
        paged_controls = self._get_pctrls(serverctrls)
        if paged_controls:
            self.page_state.update(paged_controls[0].cookie, paged_controls[0].size)
        else:
            # The server ignored our (non-critical) paging control and sent
            # everything at once
            self.page_state.update(b"", None)
        self.result_set = ResultSet(
            self._entries(rdata or []), self.page_state.pages_fetched
        )
        self.state = SearchState.PAGE_RECEIVED
        logger.debug(
            "search.page base=%s page=%d entries=%d more=%s",
            request.base,
            self.page_state.pages_fetched,
            len(self.result_set),
            self.more_available,
        )
