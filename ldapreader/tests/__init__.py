# Django settings must be configured before any test module asks for them,
# and only the first settings.configure() call counts.
from django.conf import settings

if not settings.configured:
    settings.configure(
        LDAP_SERVERS={
            "test_server": {
                "read": {
                    "url": "ldap://ldap.example.org:389",
                    "user": "cn=reader,ou=services,dc=example,dc=org",
                    "password": "reader-password",
                    "page_size": 2,
                    "follow_referrals": False,
                },
            },
            "anonymous_server": {
                "read": {
                    "url": "ldap://ldap.example.org:389",
                },
            },
            "broken_server": {
                "read": {
                    "user": "cn=reader,ou=services,dc=example,dc=org",
                },
            },
        },
    )
