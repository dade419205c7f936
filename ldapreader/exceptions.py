"""
Exceptions raised by ldapreader.

Every python-ldap error is converted to one of these at the component boundary
that issued the protocol call, with the server's own description as the message
and the original exception chained as ``__cause__``.
"""

from typing import Any


class LdapReaderError(Exception):
    """Base class for all ldapreader errors."""


class ConnectError(LdapReaderError):
    """
    The connection could not be initialized or configured, or it was used
    before :py:meth:`ldapreader.connection.DirectoryConnection.initialize`.
    """


class BindError(LdapReaderError):
    """
    A bind was refused, either by us (already bound, no credentials) or by the
    server.
    """


class SearchError(LdapReaderError):
    """A search page failed on the server or in the protocol layer."""


class TooManyAttributesError(LdapReaderError, ValueError):
    """More attribute names were requested than a query allows."""


class NoCurrentEntryError(LdapReaderError):
    """Attribute access was attempted without a positioned, live entry."""


def server_message(error: Exception) -> str:
    """
    Build a human readable message from a python-ldap exception.

    python-ldap packs its diagnostics into a dict as the first argument, with
    ``desc`` being the result code text and ``info`` any server supplied detail.

    Args:
        error: the exception raised by python-ldap

    Returns:
        ``"desc: info"``, ``"desc"``, or ``str(error)`` when there is no dict.

    """
    details: Any = error.args[0] if error.args else None
    if not isinstance(details, dict):
        return str(error) or error.__class__.__name__
    desc = details.get("desc") or error.__class__.__name__
    info = details.get("info")
    if info:
        return f"{desc}: {info}"
    return desc
