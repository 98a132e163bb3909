import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from telehealth.database import Base  # noqa: E402
from telehealth.models.appointment import Appointment  # noqa: E402
from telehealth.models.availability import AvailabilityDay  # noqa: E402
from telehealth.models.user import User  # noqa: E402


@pytest.fixture
def session_factory(tmp_path):
    # A file database so separate sessions get separate connections.
    engine = create_engine(
        f'sqlite:///{tmp_path / "booking.db"}',
        connect_args={'check_same_thread': False},
    )
    tables = [User.__table__, AvailabilityDay.__table__, Appointment.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)

    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine, tables=tables)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    created = {
        'doctor': User(
            id='doc-1', email='doc@example.com', full_name='Dr. One', role='doctor', verification_status='approved'
        ),
        'other_doctor': User(
            id='doc-2', email='doc2@example.com', full_name='Dr. Two', role='doctor', verification_status='approved'
        ),
        'patient_a': User(id='pat-a', email='a@example.com', full_name='Patient A', role='patient'),
        'patient_b': User(id='pat-b', email='b@example.com', full_name='Patient B', role='patient'),
        'admin': User(id='admin-1', email='admin@example.com', full_name='Admin', role='admin'),
    }
    db.add_all(created.values())
    db.commit()
    return created
