#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='ldapreader',
    version='1.0.0',
    description='Read-only LDAP searches with transparent simple paged results',
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['django', 'ldap', 'paged results', 'active directory'],
    packages=find_packages(exclude=['bin']),
    include_package_data=True,
    install_requires=[
        'django',
        'ldap_filter',
        'python-ldap',
    ],
    extras_require={
        'test': [
            'python-ldap-faker',
            'pytest',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ],
)
