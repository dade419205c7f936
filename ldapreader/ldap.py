# This file is here so that we can patch the ldap module in our tests.
# Patching ``ldapreader.ldap.initialize`` swaps the connection factory for
# every component at once without touching python-ldap itself.
import ldap
from ldap import *  # noqa: F403

__version__ = ldap.__version__
