import logging
from threading import Lock

from fastapi import Request
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)

Base = declarative_base()

APPOINTMENT_OVERLAP_CONSTRAINT = 'appointments_no_active_overlap'
SQLITE_BUSY_TIMEOUT_SECONDS = 30


class Database:
    """Owns the engine and session factory for one running service."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.engine = _build_engine(url)
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )
        self._schema_lock = Lock()
        self._appointment_schema_checked = False

    def create_schema(self) -> None:
        # Imported here so every table is registered on Base before create_all.
        from apointa.models import appointment, availability, doctor, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        self.ensure_appointment_schema()

    def ensure_appointment_schema(self) -> None:
        if self._appointment_schema_checked:
            return

        with self._schema_lock:
            if self._appointment_schema_checked:
                return

            inspector = inspect(self.engine)

            if 'appointments' not in inspector.get_table_names():
                self._appointment_schema_checked = True
                return

            with self.engine.begin() as connection:
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_appointments_doctor_range '
                        'ON appointments(doctor_id, start_datetime, end_datetime)'
                    )
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_patient ON appointments(patient_id)')
                )
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_availabilities_doctor_day '
                        'ON availabilities(doctor_id, day_of_week, start_time)'
                    )
                )
                if self.engine.dialect.name == 'postgresql':
                    _ensure_overlap_constraint(connection)

            self._appointment_schema_checked = True

    def dispose(self) -> None:
        self.engine.dispose()


def _build_engine(url: str):
    if url.startswith('sqlite'):
        if ':memory:' in url or url == 'sqlite://':
            return create_engine(
                url,
                connect_args={'check_same_thread': False},
                poolclass=StaticPool,
            )
        engine = create_engine(url, connect_args={'check_same_thread': False, 'timeout': SQLITE_BUSY_TIMEOUT_SECONDS})
        _begin_immediate_transactions(engine)
        return engine
    return create_engine(url, pool_pre_ping=True)


def _begin_immediate_transactions(engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    SQLite ignores ``SELECT ... FOR UPDATE`` and pysqlite defers ``BEGIN``
    until the first write, so a booking's overlap check would otherwise run
    outside any lock. Concurrent writers queue on the busy timeout instead.
    """

    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_transactions(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


def _ensure_overlap_constraint(connection) -> None:
    existing = connection.execute(
        text('SELECT 1 FROM pg_constraint WHERE conname = :name'),
        {'name': APPOINTMENT_OVERLAP_CONSTRAINT},
    ).first()
    if existing:
        return

    logger.info('Adding %s exclusion constraint', APPOINTMENT_OVERLAP_CONSTRAINT)
    connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
    connection.execute(
        text(
            f'ALTER TABLE appointments ADD CONSTRAINT {APPOINTMENT_OVERLAP_CONSTRAINT} '
            'EXCLUDE USING gist ('
            'doctor_id WITH =, '
            "tsrange(start_datetime, end_datetime, '[)') WITH &&"
            ") WHERE (status IN ('pending', 'confirmed'))"
        )
    )


def get_db(request: Request):
    db = request.app.state.database.session_factory()
    try:
        yield db
    finally:
        db.close()
