# Overview: Flask extension instances shared by models, services and the CLI.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def enable_sqlite_savepoints(engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    The sqlite3 driver otherwise defers BEGIN until the first DML statement,
    so a SAVEPOINT issued first becomes the outer transaction and RELEASE
    commits it. Per-item savepoints depend on this being fixed.
    """
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")
