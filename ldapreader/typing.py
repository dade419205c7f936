"""
LDAP reader type definitions.

This module provides type aliases for the raw LDAP data structures that flow
between python-ldap and the reader, using Python 3.10+ type hinting conventions.
"""

LDAPAttributes = dict[str, list[bytes]]
LDAPData = tuple[str, LDAPAttributes]
# What ``result3()`` hands back for one search: entries and search references
# (AD puts the referral URLs where the attribute dict would be)
RawSearchData = list[tuple[str | None, LDAPAttributes | list[str]]]
AttributeList = tuple[str, ...]
