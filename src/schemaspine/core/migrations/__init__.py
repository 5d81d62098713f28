"""Migration runner for schema-spine.

Manifesto:
    Database schemas must evolve safely across deployments.  Manual DDL
    execution is error-prone and unrepeatable.  The runner applies
    versioned ``Migration`` objects through an adapter, recording each
    applied version in the version store inside the same transaction as
    the change itself.

Modules
-------
base      Migration abstract base class (version, name, up, down)
runner    MigrationRunner with status() / migrate() / rollback() / execute()

Tags:
    schema-spine, migrations, schema, database, idempotent, DDL

Doc-Types:
    package-overview
"""

from schemaspine.core.migrations.base import Migration
from schemaspine.core.migrations.runner import MigrationResult, MigrationRunner, MigrationStatus

__all__ = [
    "Migration",
    "MigrationRunner",
    "MigrationResult",
    "MigrationStatus",
]
