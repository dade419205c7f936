"""
A scripted stand-in for python-ldap's ``LDAPObject`` that really pages.

python-ldap-faker answers a paged search with everything at once, which is
fine for most tests but can't exercise multi-page queries.  This stub keeps an
ordered list of entries and serves them ``size`` at a time, using the offset of
the next entry as its cookie, and records every search it sees.
"""

from typing import Any

import ldap
from ldap.controls import SimplePagedResultsControl

from ldapreader.typing import LDAPData


def make_users(count: int, base: str = "ou=users,dc=example,dc=org") -> list[LDAPData]:
    """
    ``user{i}`` is a member of ``i % 4`` groups; members of none have no
    ``memberOf`` attribute at all.
    """
    users: list[LDAPData] = []
    for i in range(count):
        attrs = {
            "objectClass": [b"top", b"person", b"user"],
            "cn": [f"user{i}".encode()],
            "sAMAccountName": [f"user{i}".encode()],
        }
        if i % 4:
            attrs["memberOf"] = [
                f"cn=group{j},ou=groups,dc=example,dc=org".encode()
                for j in range(i % 4)
            ]
        users.append((f"cn=user{i},{base}", attrs))
    return users


class PagedDirectoryStub:
    """
    Serve ``entries`` through simple paged results.

    Keyword Args:
        supports_paging: when ``False`` we behave like a server without the
            paging control: critical controls fail the search, non-critical
            ones are ignored and everything comes back in one response
        fail_on_page: raise ``ldap.SERVER_DOWN`` on this (1-based) search
        empty_pages: (1-based) searches that return no entries but a cookie
            that continues where the previous page left off
        references: search references to append to every page
        passwords: DN to password map for :py:meth:`simple_bind_s`

    """

    def __init__(  # noqa: PLR0913
        self,
        entries: list[LDAPData],
        supports_paging: bool = True,  # noqa: FBT001, FBT002
        fail_on_page: int | None = None,
        empty_pages: tuple[int, ...] = (),
        references: list[str] | None = None,
        passwords: dict[str, str] | None = None,
    ) -> None:
        self.entries = list(entries)
        self.supports_paging = supports_paging
        self.fail_on_page = fail_on_page
        self.empty_pages = empty_pages
        self.references = references or []
        self.passwords = passwords or {}
        self.options: dict[int, Any] = {}
        self.searches: list[dict[str, Any]] = []
        self.bound_dn: str | None = None
        self.unbind_calls = 0
        self._results: dict[int, tuple[list, list]] = {}
        self._msgid = 0

    def set_option(self, option: int, invalue: Any) -> None:
        self.options[option] = invalue

    def simple_bind_s(self, who: str | None = None, cred: str | None = None) -> None:
        if who is None or self.passwords.get(who) != cred:
            raise ldap.INVALID_CREDENTIALS(
                {"result": 49, "desc": "Invalid credentials", "ctrls": []}
            )
        self.bound_dn = who

    def unbind_s(self) -> None:
        self.bound_dn = None
        self.unbind_calls += 1

    def _project(self, attrs: dict[str, list[bytes]], attrlist: list[str] | None):
        if attrlist is None:
            return {name: list(values) for name, values in attrs.items()}
        wanted = {name.lower() for name in attrlist}
        return {
            name: list(values)
            for name, values in attrs.items()
            if name.lower() in wanted
        }

    def search_ext(  # noqa: PLR0913
        self,
        base: str,
        scope: int,
        filterstr: str = "(objectClass=*)",
        attrlist: list[str] | None = None,
        attrsonly: int = 0,  # noqa: ARG002
        serverctrls: list | None = None,
        clientctrls: list | None = None,  # noqa: ARG002
        timeout: int = -1,
        sizelimit: int = 0,
    ) -> int:
        self._msgid += 1
        page_number = len(self.searches) + 1
        paging = [
            c
            for c in serverctrls or []
            if c.controlType == SimplePagedResultsControl.controlType
        ]
        self.searches.append(
            {
                "base": base,
                "scope": scope,
                "filterstr": filterstr,
                "attrlist": attrlist,
                "timeout": timeout,
                "sizelimit": sizelimit,
                "cookie": paging[0].cookie if paging else None,
                "size": paging[0].size if paging else None,
                "criticality": paging[0].criticality if paging else None,
            }
        )
        if self.fail_on_page == page_number:
            raise ldap.SERVER_DOWN({"result": -1, "desc": "Can't contact LDAP server"})
        rows = [(dn, self._project(attrs, attrlist)) for dn, attrs in self.entries]
        references = [(None, [url]) for url in self.references]
        if not paging or not self.supports_paging:
            if paging and paging[0].criticality:
                raise ldap.UNAVAILABLE_CRITICAL_EXTENSION(
                    {
                        "result": 12,
                        "desc": "Critical extension is unavailable",
                        "info": "paged results control not supported",
                        "ctrls": [],
                    }
                )
            self._results[self._msgid] = (rows + references, [])
            return self._msgid
        control = paging[0]
        offset = int(control.cookie) if control.cookie else 0
        if page_number in self.empty_pages:
            page: list = []
            next_offset = offset
        else:
            page = rows[offset : offset + control.size]
            next_offset = offset + len(page)
        cookie = b"%d" % next_offset if next_offset < len(rows) else b""
        response = SimplePagedResultsControl(False, size=len(rows), cookie=cookie)  # noqa: FBT003
        self._results[self._msgid] = (page + references, [response])
        return self._msgid

    def result3(self, msgid: int = ldap.RES_ANY, all: int = 1, timeout: Any = None):  # noqa: A002, ARG002
        data, ctrls = self._results.pop(msgid)
        return ldap.RES_SEARCH_RESULT, data, msgid, ctrls
