"""
Bind credentials and the bind handshake.
"""

import logging

from ldapreader import ldap

from .connection import DirectoryConnection
from .exceptions import BindError, server_message

logger = logging.getLogger(__name__)


class Credentials:
    """
    A bind DN and its secret.

    The secret is kept in a ``bytearray`` so that :py:meth:`clear` can zero it in
    place instead of leaving the old value for the garbage collector.
    """

    def __init__(self, dn: str, secret: str) -> None:
        self.dn = dn
        self._secret = bytearray(secret.encode("utf-8"))

    def __repr__(self) -> str:
        return f"<Credentials dn={self.dn!r} secret=*CENSORED*>"

    @property
    def secret(self) -> str:
        return self._secret.decode("utf-8")

    @property
    def is_cleared(self) -> bool:
        return not self._secret and not self.dn

    def clear(self) -> None:
        for i in range(len(self._secret)):
            self._secret[i] = 0
        self._secret = bytearray()
        self.dn = ""


class CredentialStore:
    """
    Holds the credentials for one session and performs binds with them.
    """

    def __init__(self) -> None:
        self.credentials: Credentials | None = None

    def __repr__(self) -> str:
        return f"<CredentialStore {self.credentials!r}>"

    @property
    def has_credentials(self) -> bool:
        return self.credentials is not None

    @property
    def bind_dn(self) -> str | None:
        if self.credentials is None:
            return None
        return self.credentials.dn

    def set_credentials(self, user: str, secret: str) -> None:
        """
        Replace the stored credentials, zeroing the previous secret first.

        Args:
            user: full DN of the bind user
            secret: the password for ``user``

        """
        self.clear()
        self.credentials = Credentials(user, secret)

    def clear(self) -> None:
        if self.credentials is not None:
            self.credentials.clear()
            self.credentials = None

    def bind(
        self,
        connection: DirectoryConnection,
        rebind: bool = False,  # noqa: FBT001, FBT002
    ) -> None:
        """
        Bind ``connection`` with the stored credentials.

        Args:
            connection: an initialized connection

        Keyword Args:
            rebind: allow binding a connection that is already bound, replacing
                its identity

        Raises:
            BindError: the connection is already bound and ``rebind`` is not
                set, no credentials are stored, or the server rejected the bind
            ConnectError: the connection is not initialized

        """
        if connection.is_bound and not rebind:
            msg = f"Already bound as {connection.bound_dn}"
            raise BindError(msg)
        if self.credentials is None:
            msg = "No bind credentials"
            raise BindError(msg)
        ldap_object = connection.connection
        dn = self.credentials.dn
        try:
            ldap_object.simple_bind_s(dn, self.credentials.secret)
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            connection.mark_unbound()
            logger.warning("bind.failed dn=%s error=%s", dn, server_message(e))
            raise BindError(server_message(e)) from e
        connection.mark_bound(dn)
        logger.info("bind.success dn=%s", dn)
