"""
The session object most callers use.

:py:class:`LdapReader` ties together one connection, one credential store,
one paged search engine and the cursor over its current query::

    with LdapReader(
        "ldap://ldap.example.org",
        bind_user="cn=reader,ou=services,dc=example,dc=org",
        bind_password="secret",
    ) as reader:
        reader.query("(objectClass=user)", "ou=users,dc=example,dc=org",
                     "sAMAccountName", "memberOf")
        while reader.fetch():
            with reader.get_attribute("memberOf") as groups:
                print(reader.entry.dn, groups.as_strings())
"""

import logging
from collections.abc import Iterator
from typing import Any

from ldap_filter import Filter

from . import conf
from .connection import DirectoryConnection
from .credentials import CredentialStore
from .entries import AttributeValues, Entry, EntryCursor
from .exceptions import BindError, LdapReaderError, NoCurrentEntryError
from .paging import PagedSearch, SearchRequest

logger = logging.getLogger(__name__)


class LdapReader:
    """
    A read-only, single-consumer LDAP session with transparent paging.

    The connection is initialized on construction.  If both ``bind_user`` and
    ``bind_password`` are given we bind right away too.

    Args:
        uri: server URI, e.g. ``ldap://ldap.example.org:389``

    Keyword Args:
        bind_user: full DN of the bind user
        bind_password: password of the bind user
        version: LDAP protocol version; ``None`` means ``LDAPREADER_PROTOCOL_VERSION``
        page_size: entries per page; ``None`` means ``LDAPREADER_PAGE_SIZE``
        paging_critical: require paging support from the server; ``None``
            means ``LDAPREADER_PAGING_CRITICAL``
        follow_referrals: let libldap chase referrals
        timeout: network timeout in seconds

    Raises:
        ConnectError: the connection could not be initialized
        BindError: the initial bind failed

    """

    def __init__(  # noqa: PLR0913
        self,
        uri: str,
        bind_user: str | None = None,
        bind_password: str | None = None,
        version: int | None = None,
        page_size: int | None = None,
        paging_critical: bool | None = None,
        follow_referrals: bool = False,  # noqa: FBT001, FBT002
        timeout: float | None = None,
    ) -> None:
        self.connection = DirectoryConnection(
            uri, version=version, follow_referrals=follow_referrals, timeout=timeout
        )
        self.credentials = CredentialStore()
        self.search = PagedSearch(
            self.connection, page_size=page_size, critical=paging_critical
        )
        self.cursor: EntryCursor | None = None
        self.connection.initialize()
        if bind_user is not None and bind_password is not None:
            try:
                self.bind(bind_user, bind_password)
            except LdapReaderError:
                self.close()
                raise

    @classmethod
    def from_settings(cls, server: str, key: str = "read") -> "LdapReader":
        """
        Build a reader from ``settings.LDAP_SERVERS[server][key]``.

        The block needs ``url`` and may set ``user``, ``password``,
        ``version``, ``page_size``, ``paging_critical``, ``follow_referrals``
        and ``timeout``.

        Raises:
            ImproperlyConfigured: an ``LDAPREADER_*`` setting is unusable, or the
                block is missing or has no ``url``

        """
        conf.validate_settings()
        config: dict[str, Any] = conf.get_server_config(server, key=key)
        logger.debug(
            "reader.from_settings server=%s key=%s url=%s", server, key, config["url"]
        )
        return cls(
            config["url"],
            bind_user=config.get("user"),
            bind_password=config.get("password"),
            version=config.get("version"),
            page_size=config.get("page_size"),
            paging_critical=config.get("paging_critical"),
            follow_referrals=config.get("follow_referrals", False),
            timeout=config.get("timeout"),
        )

    def __repr__(self) -> str:
        return f"<LdapReader {self.connection!r}>"

    def __enter__(self) -> "LdapReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __iter__(self) -> Iterator[Entry]:
        """
        Yield each remaining entry of the current query.

        An entry is only usable until the iteration moves past the page it
        came from.
        """
        while self.fetch():
            yield self.entry  # type: ignore[misc]

    # Credentials

    def set_credentials(self, user: str, secret: str) -> None:
        self.credentials.set_credentials(user, secret)

    def bind(
        self,
        user: str | None = None,
        secret: str | None = None,
        rebind: bool = False,  # noqa: FBT001, FBT002
    ) -> None:
        """
        Bind to the server.

        With ``user`` and ``secret`` the stored credentials are replaced first;
        without them the stored credentials are used.

        Keyword Args:
            user: full DN of the bind user
            secret: password of the bind user
            rebind: bind even if already bound, e.g. to switch accounts

        Raises:
            BindError: only one of ``user`` and ``secret`` was given, already
                bound without ``rebind``, no credentials, or the server
                rejected them

        """
        if (user is None) != (secret is None):
            msg = "Both user and secret are needed to bind with new credentials"
            raise BindError(msg)
        if self.connection.is_bound and not rebind:
            # Refuse before touching the stored credentials
            msg = f"Already bound as {self.connection.bound_dn}"
            raise BindError(msg)
        if user is not None and secret is not None:
            self.credentials.set_credentials(user, secret)
        self.credentials.bind(self.connection, rebind=rebind)

    # Searching

    @property
    def page_size(self) -> int:
        return self.search.page_size

    def set_page_size(self, page_size: int) -> None:
        """
        Set the page size used by subsequent queries.

        Raises:
            ValueError: ``page_size`` is not a positive integer

        """
        self.search.page_size = page_size

    def query(
        self, filterstr: str | Filter | None, base: str, *attributes: str
    ) -> SearchRequest:
        """
        Start a query and fetch its first page.

        Args:
            filterstr: LDAP filter, e.g. ``"(&(objectClass=user)(uidNumber=*))"``,
                or an ``ldap_filter.Filter``
            base: search base, e.g. ``"ou=users,dc=example,dc=org"``
            *attributes: names of the attributes to retrieve; none means all

        Raises:
            TooManyAttributesError: too many attribute names
            ConnectError: the connection is not initialized
            SearchError: the first page failed

        Returns:
            The request for this query.

        """
        request = self.search.query(filterstr, base, attributes)
        self.cursor = EntryCursor(self.search)
        return request

    def fetch(self) -> bool:
        """
        Advance to the next entry of the current query.

        Returns:
            ``True`` if :py:attr:`entry` holds the next entry, ``False`` if
            there is no query or no more entries.

        """
        if self.cursor is None:
            return False
        return self.cursor.fetch()

    @property
    def entry(self) -> Entry | None:
        if self.cursor is None:
            return None
        return self.cursor.entry

    def get_attribute(self, name: str) -> AttributeValues:
        """
        Return the values of attribute ``name`` on the current entry.

        Raises:
            NoCurrentEntryError: :py:meth:`fetch` has not positioned an entry

        Returns:
            The values, or an empty set if the entry lacks the attribute.

        """
        entry = self.entry
        if entry is None:
            msg = "No entry retrieved from server"
            raise NoCurrentEntryError(msg)
        return entry.get_attribute(name)

    @staticmethod
    def release(values: AttributeValues | None) -> None:
        """
        Release an attribute value set.  ``None`` and already released sets
        are ignored.
        """
        if values is None:
            return
        values.release()

    @property
    def more_available(self) -> bool:
        return self.search.more_available

    @property
    def result_count(self) -> int:
        """
        The server's advisory estimate of the result size, from the last page.
        """
        return self.search.result_count

    @property
    def pages_fetched(self) -> int:
        return self.search.pages_fetched

    def close(self) -> None:
        """
        Drop the current query, forget the credentials and unbind.
        """
        self.cursor = None
        self.search.discard()
        self.credentials.clear()
        self.connection.close()
