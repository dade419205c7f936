"""
Connection management for ldapreader.

:py:class:`DirectoryConnection` owns the python-ldap handle for one session:
it initializes it, negotiates the protocol version and remembers whether (and
as whom) the handle is bound.
"""

import logging

import ldapurl

from ldapreader import conf, ldap

from .exceptions import ConnectError, server_message

logger = logging.getLogger(__name__)


class DirectoryConnection:
    """
    The transport handle to one directory server.

    There is no automatic retry or reconnection: once an operation fails with
    :py:exc:`ldapreader.exceptions.ConnectError` it is up to the caller to build
    a new connection.

    Args:
        uri: the server URI, e.g. ``ldap://ldap.example.org:389``

    Keyword Args:
        version: LDAP protocol version; ``None`` means ``LDAPREADER_PROTOCOL_VERSION``
        follow_referrals: let libldap chase referrals
        timeout: network timeout in seconds; ``None`` leaves the library default

    """

    def __init__(
        self,
        uri: str,
        version: int | None = None,
        follow_referrals: bool = False,  # noqa: FBT001, FBT002
        timeout: float | None = None,
    ) -> None:
        self.uri = uri
        self.version: int = (
            version if version is not None else conf.default_protocol_version()
        )
        self.follow_referrals = follow_referrals
        self.timeout = timeout
        self.bound_dn: str | None = None
        self._ldap_object: ldap.ldapobject.LDAPObject | None = None  # type: ignore[name-defined]

    def __repr__(self) -> str:
        state = "bound" if self.is_bound else "unbound"
        if not self.is_initialized:
            state = "uninitialized"
        return f"<DirectoryConnection {self.uri} v{self.version} {state}>"

    @property
    def is_initialized(self) -> bool:
        return self._ldap_object is not None

    @property
    def is_bound(self) -> bool:
        return self.bound_dn is not None

    @property
    def connection(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
        """
        Get the initialized python-ldap handle.

        Raises:
            ConnectError: :py:meth:`initialize` has not succeeded yet

        Returns:
            The LDAPObject for this session.

        """
        if self._ldap_object is None:
            msg = f"Connection to {self.uri} is not initialized"
            raise ConnectError(msg)
        return self._ldap_object

    def initialize(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
        """
        Create the python-ldap handle and apply our options to it.

        Calling this on an already initialized connection returns the existing
        handle.

        Raises:
            ConnectError: the URI is not an LDAP URI, python-ldap refused it, or
                an option could not be set

        Returns:
            The initialized LDAPObject.

        """
        if self._ldap_object is not None:
            return self._ldap_object
        if not ldapurl.isLDAPUrl(self.uri):
            msg = f"Not an LDAP URI: {self.uri!r}"
            raise ConnectError(msg)
        try:
            ldap_object = ldap.initialize(self.uri)
            ldap_object.set_option(
                ldap.OPT_REFERRALS,  # type: ignore[attr-defined]
                1 if self.follow_referrals else 0,
            )
            if self.timeout is not None:
                ldap_object.set_option(ldap.OPT_NETWORK_TIMEOUT, float(self.timeout))  # type: ignore[attr-defined]
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            raise ConnectError(server_message(e)) from e
        self._ldap_object = ldap_object
        try:
            self.set_protocol_version(self.version)
        except ConnectError:
            self._ldap_object = None
            raise
        logger.info("connection.initialize uri=%s version=%s", self.uri, self.version)
        return ldap_object

    def set_protocol_version(self, version: int) -> None:
        """
        Set the LDAP protocol version on the handle.

        Args:
            version: ``ldap.VERSION2`` or ``ldap.VERSION3``

        Raises:
            ConnectError: the version is not supported, the connection is not
                initialized, or the library refused the option

        """
        if version not in conf.SUPPORTED_PROTOCOL_VERSIONS:
            msg = f"Unsupported LDAP protocol version: {version}"
            raise ConnectError(msg)
        try:
            self.connection.set_option(ldap.OPT_PROTOCOL_VERSION, version)  # type: ignore[attr-defined]
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            raise ConnectError(server_message(e)) from e
        self.version = version

    def mark_bound(self, dn: str) -> None:
        self.bound_dn = dn

    def mark_unbound(self) -> None:
        self.bound_dn = None

    def close(self) -> None:
        """
        Unbind and drop the handle.  Closing twice is harmless.
        """
        if self._ldap_object is None:
            return
        ldap_object, self._ldap_object = self._ldap_object, None
        self.bound_dn = None
        try:
            ldap_object.unbind_s()
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            raise ConnectError(server_message(e)) from e
        finally:
            logger.debug("connection.close uri=%s", self.uri)
