"""
Schema Setup Service

Checks that the six tracker tables exist, produces the SQL that creates the
missing ones and runs such a script on request.
"""

import logging
import re

from sqlalchemy.schema import CreateIndex, CreateTable

from models import db, TABLE_MODELS

logger = logging.getLogger(__name__)

REQUIRED_TABLES = list(TABLE_MODELS)

_STATEMENT = re.compile(
    r'^CREATE\s+(?:UNIQUE\s+)?(?P<kind>TABLE|INDEX)\s+(?:IF\s+NOT\s+EXISTS\s+)?'
    r'(?P<name>["`\w]+)(?:\s+ON\s+(?P<table>["`\w]+))?',
    re.IGNORECASE,
)


class SetupScriptError(Exception):
    """Raised when a setup script contains something other than table/index creation."""
    pass


def missing_tables(table_names=None):
    """Names of required tables that cannot be queried."""
    missing = []
    with db.engine.connect() as conn:
        for table_name in table_names or REQUIRED_TABLES:
            if table_name not in TABLE_MODELS:
                missing.append(table_name)
                continue
            try:
                conn.execute(db.text(f"SELECT 1 FROM {table_name} LIMIT 1"))
            except Exception:
                logger.warning("Required table %s is missing", table_name)
                missing.append(table_name)
                conn.rollback()
    return missing


def generate_setup_script(table_names, dialect=None):
    """CREATE statements for the given tables in the dialect of the bound engine."""
    dialect = dialect or db.engine.dialect
    parts = ['-- Run this SQL to create the missing tables', '']
    for table_name in table_names:
        table = TABLE_MODELS[table_name].__table__
        parts.append(f'-- Create {table_name} table')
        ddl = CreateTable(table, if_not_exists=True).compile(dialect=dialect)
        parts.append(str(ddl).strip() + ';')
        for index in sorted(table.indexes, key=lambda index: index.name):
            ddl = CreateIndex(index, if_not_exists=True).compile(dialect=dialect)
            parts.append(str(ddl).strip() + ';')
        parts.append('')
    return '\n'.join(parts)


def check_database_status():
    """
    Report whether the schema is complete.

    Returns:
        dict with 'success' and 'message', plus 'missingTables' and
        'sqlScript' when something is missing
    """
    missing = missing_tables()
    if not missing:
        return {'success': True, 'message': 'All required tables exist'}

    return {
        'success': False,
        'message': f"Missing tables: {', '.join(missing)}",
        'missingTables': missing,
        'sqlScript': generate_setup_script(missing),
    }


def _strip_comments(script):
    lines = [line for line in script.splitlines() if not line.strip().startswith('--')]
    return '\n'.join(lines)


def _bare(name):
    return name.strip('"`').lower() if name else None


def split_statements(script):
    """
    Split a setup script into statements and check each one.

    Only CREATE TABLE / CREATE INDEX on the tracker tables are accepted.

    Raises:
        SetupScriptError: on any other statement
    """
    statements = [s.strip() for s in _strip_comments(script).split(';') if s.strip()]
    if not statements:
        raise SetupScriptError('SQL script is empty')

    for statement in statements:
        match = _STATEMENT.match(statement)
        if not match:
            raise SetupScriptError(f"Only CREATE TABLE and CREATE INDEX statements are allowed: {statement[:60]}")
        target = _bare(match.group('table')) if match.group('kind').upper() == 'INDEX' else _bare(match.group('name'))
        if target not in TABLE_MODELS:
            raise SetupScriptError(f"Unknown table in setup script: {target}")
    return statements


def run_setup_script(script, table_names=None):
    """
    Execute a setup script and verify the tables afterwards.

    Returns:
        dict with 'success', 'message' and, when verification fails,
        'missingTables'
    """
    statements = split_statements(script)

    with db.engine.begin() as conn:
        for statement in statements:
            conn.exec_driver_sql(statement)
    logger.info("Executed setup script (%d statements)", len(statements))

    if table_names:
        still_missing = missing_tables(table_names)
        if still_missing:
            return {
                'success': False,
                'message': f"Tables were not created successfully. Still missing: {', '.join(still_missing)}",
                'missingTables': still_missing,
            }

    return {
        'success': True,
        'message': 'SQL script executed successfully',
        'databaseStatus': check_database_status(),
    }


def create_tables():
    """Create every missing table from the models."""
    db.create_all()
    logger.info("Database tables created")
