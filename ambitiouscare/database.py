from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from ambitiouscare.core import config


connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False

APPOINTMENT_EXCLUSION_CONSTRAINT = 'appointments_no_therapist_overlap'


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'therapist_availability' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('therapist_availability')}
        migration_steps = [
            ('is_available', 'ALTER TABLE therapist_availability ADD COLUMN is_available BOOLEAN DEFAULT TRUE'),
            ('created_at', 'ALTER TABLE therapist_availability ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_availability_therapist_day '
                    'ON therapist_availability(therapist_id, day_of_week, is_available)'
                )
            )

        _availability_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('title', 'ALTER TABLE appointments ADD COLUMN title VARCHAR'),
            ('description', 'ALTER TABLE appointments ADD COLUMN description VARCHAR'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_therapist_status '
                    'ON appointments(therapist_id, status, start_time)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_start ON appointments(patient_id, start_time)')
            )

            if engine.dialect.name == 'postgresql':
                existing_constraints = {
                    row[0]
                    for row in connection.execute(
                        text("SELECT conname FROM pg_constraint WHERE conrelid = 'appointments'::regclass")
                    )
                }
                if APPOINTMENT_EXCLUSION_CONSTRAINT not in existing_constraints:
                    connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
                    connection.execute(
                        text(
                            f'ALTER TABLE appointments ADD CONSTRAINT {APPOINTMENT_EXCLUSION_CONSTRAINT} '
                            'EXCLUDE USING gist (therapist_id WITH =, tsrange(start_time, end_time) WITH &&) '
                            "WHERE (status IN ('pending', 'confirmed'))"
                        )
                    )

        _appointment_schema_checked = True
