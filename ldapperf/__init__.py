"""
Load generator for LDAP directory servers.

Drives a pool of worker threads that repeatedly issue templated searches
against a directory server and reports aggregate throughput and failures.
"""

from .main import main

__all__ = ["main"]
