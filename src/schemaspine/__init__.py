"""
schema-spine - database schema migrations across SQLite, PostgreSQL and MySQL.

- schemaspine.core: schema descriptors, adapters, version store, runner
- schemaspine.cli: ``schemaspine`` command line
"""

__version__ = "0.1.0"

from schemaspine.core import *  # noqa
