"""
Pytest configuration and shared fixtures
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from frontdesk.database import Base
from frontdesk.models import ontology  # noqa
from frontdesk.models.ontology import Hotel, Room, User, UserRole


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Database session"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test engine (event handlers)"""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


# ============== Data fixtures ==============

@pytest.fixture
def sample_hotel(db_session):
    """Hotel with a description but no settings block"""
    hotel = Hotel(name="Seaside", description="Family run hotel by the sea.")
    db_session.add(hotel)
    db_session.commit()
    db_session.refresh(hotel)
    return hotel


@pytest.fixture
def sample_room(db_session, sample_hotel):
    """Vacant clean room 101 with a free-text note"""
    room = Room(hotel_id=sample_hotel.id, room_number=101, reserved=False,
                special_requests=["Sea view", "HK:STATUS=CLEAN"])
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def sample_rooms(db_session, sample_hotel, sample_room):
    """Rooms 101 (clean), 102 (dirty, on the list) and 103 (no tags)"""
    dirty = Room(hotel_id=sample_hotel.id, room_number=102, reserved=False,
                 special_requests=["HK:STATUS=DIRTY", "HK:IN_LIST=true"])
    bare = Room(hotel_id=sample_hotel.id, room_number=103, reserved=False, special_requests=[])
    db_session.add_all([dirty, bare])
    db_session.commit()
    return [sample_room, dirty, bare]


@pytest.fixture
def receptionist(db_session):
    user = User(email="front@hotel.test", name="Front Desk", role=UserRole.WAITER)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def manager(db_session):
    user = User(email="manager@hotel.test", name="Manager", role=UserRole.MANAGER)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def published_events():
    """Collects events published by a service under test"""
    return []


@pytest.fixture
def publisher(published_events):
    """Event publisher that records instead of dispatching"""
    return published_events.append
