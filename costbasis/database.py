# coding: utf-8
"""
SQLAlchemy declarative base for model classes in this package.
"""

# stdlib imports
from contextlib import contextmanager


# 3rd party imports
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base, declared_attr
from sqlalchemy.sql.schema import MetaData


def make_engine(db_uri, **kwargs):
    """Create an Engine; SQLite connections get working SAVEPOINT support.

    pysqlite's own transaction handling breaks SAVEPOINT/ROLLBACK TO, which the
    backfill relies on to isolate per-transaction failures.  Take over BEGIN
    ourselves.
    https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
    """
    engine = create_engine(db_uri, **kwargs)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def do_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def do_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


Session = sessionmaker()


@contextmanager
def sessionmanager(**kwargs):
    """Provide a transactional scope around a series of operations."""
    session = Session(**kwargs)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


#  Naming convention for constraints - important for database migrations
#  https://docs.sqlalchemy.org/en/20/core/constraints.html#configuring-constraint-naming-conventions
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


class _Base(object):
    """
    Common behavior for model classes in this package.
    """

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    def __repr__(self):
        """
        Lists all non-NULL column attributes.
        """
        attrs = [col.key for col in self.__table__.c]
        return "<%s(%s)>" % (
            self.__class__.__name__,
            ", ".join(
                [
                    "%s=%r" % (attr, str(getattr(self, attr)))
                    for attr in attrs
                    if getattr(self, attr, None) is not None
                ]
            ),
        )


Base = declarative_base(cls=_Base, metadata=metadata)
