"""
Database helpers shared by the ledger and the match registry
"""
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

_UPSERT_DIALECTS = {
    'postgresql': postgresql_insert,
    'sqlite': sqlite_insert,
}


def insert_ignore(db, table, values, conflict_columns):
    """Insert a row unless it collides on a unique key.

    Returns True when the row was written, False when a row with the same
    ``conflict_columns`` already existed. The insert is a single statement,
    so two concurrent callers can never both get True. Does not commit.
    """
    dialect = db.session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)

    if insert is not None:
        stmt = insert(table).values(**values).on_conflict_do_nothing(
            index_elements=conflict_columns
        )
        result = db.session.execute(stmt)
        return result.rowcount == 1

    # Other backends: let the unique constraint reject the row inside a savepoint
    try:
        with db.session.begin_nested():
            db.session.execute(table.insert().values(**values))
        return True
    except IntegrityError:
        return False
