import pytest

from apointa.database import Database
from apointa.models.doctor import Doctor
from apointa.models.user import User
from apointa.scheduling.store import SchedulingStore


@pytest.fixture
def database():
    database = Database('sqlite://')
    database.create_schema()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def db(database):
    session = database.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db) -> SchedulingStore:
    return SchedulingStore(db)


def add_doctor(db, *, name: str, email: str, specialty: str = 'Family Medicine') -> Doctor:
    user = User(name=name, email=email, role='doctor')
    db.add(user)
    db.flush()
    doctor = Doctor(user_id=user.id, specialty=specialty, clinic_name='Harbor Clinic', phone='555-0100')
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


@pytest.fixture
def doctor(db) -> Doctor:
    return add_doctor(db, name='Dr. Ada Grey', email='ada.grey@clinic.test', specialty='Cardiology')


@pytest.fixture
def other_doctor(db) -> Doctor:
    return add_doctor(db, name='Dr. Omar Lind', email='omar.lind@clinic.test')


@pytest.fixture
def patient(db) -> User:
    user = User(name='Sam Patel', email='sam.patel@example.test', role='patient')
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
