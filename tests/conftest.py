import os

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from ambitiouscare.core.cache import query_cache  # noqa: E402
from ambitiouscare.database import Base  # noqa: E402
from ambitiouscare.models.appointment import Appointment  # noqa: E402
from ambitiouscare.models.availability import TherapistAvailability  # noqa: E402
from ambitiouscare.models.user import ROLE_PATIENT, ROLE_THERAPIST, Profile  # noqa: E402

TABLES = [Profile.__table__, TherapistAvailability.__table__, Appointment.__table__]


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))
        engine.dispose()


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture(autouse=True)
def fake_redis(redis_server, monkeypatch: pytest.MonkeyPatch):
    client = fakeredis.FakeRedis(server=redis_server, decode_responses=True)
    monkeypatch.setattr(query_cache, 'redis_client', client)
    return client


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('ambitiouscare.routes.errors.ensure_availability_schema', lambda: None)
    monkeypatch.setattr('ambitiouscare.routes.errors.ensure_appointment_schema', lambda: None)


@pytest.fixture
def make_profile(db_session):
    def _make_profile(role: str, email: str, full_name: str = 'Test User') -> Profile:
        profile = Profile(email=email, full_name=full_name, role=role)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make_profile


@pytest.fixture
def therapist(make_profile) -> Profile:
    return make_profile(ROLE_THERAPIST, 'therapist@example.com', 'Dana Therapist')


@pytest.fixture
def patient(make_profile) -> Profile:
    return make_profile(ROLE_PATIENT, 'patient@example.com', 'Pat Patient')
