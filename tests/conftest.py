import os

# Must be set before the app modules build their engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["APP_ENV"] = "test"
os.environ.pop("PIX_WEBHOOK_SECRET", None)

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from flight_booking.api.routes.dependencies import get_db
from flight_booking.domain.state_machine import FlightStatus
from flight_booking.infrastructure.db.models import Airline, Airport, Base, Flight
from flight_booking.main import app


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'flight_booking.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # pysqlite transaction workaround from the SQLAlchemy docs: let
    # SQLAlchemy emit BEGIN itself so SAVEPOINT and locking behave.
    # IMMEDIATE takes the write lock up front, serializing writers the
    # way row locks do on Postgres.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_flight(db):
    """Creates a scheduled GRU -> SDU flight with the given seat count and fare."""
    airline = Airline(name="LATAM Airlines", code="LA")
    origin = Airport(
        name="Aeroporto de Guarulhos",
        code="GRU",
        city="São Paulo",
        country="Brasil",
        timezone="America/Sao_Paulo",
    )
    destination = Airport(
        name="Aeroporto Santos Dumont",
        code="SDU",
        city="Rio de Janeiro",
        country="Brasil",
        timezone="America/Sao_Paulo",
    )
    db.add_all([airline, origin, destination])
    db.commit()

    counter = {"n": 0}

    def _make_flight(
        total_seats: int = 10,
        available_seats: int | None = None,
        price: str = "450.00",
        departure_time: datetime | None = None,
        status: FlightStatus = FlightStatus.SCHEDULED,
        reverse: bool = False,
    ) -> Flight:
        counter["n"] += 1
        departure = departure_time or datetime(2030, 5, 10, 12, 0, tzinfo=timezone.utc)
        start, end = (destination, origin) if reverse else (origin, destination)
        flight = Flight(
            flight_number=f"LA{3000 + counter['n']}",
            airline_id=airline.id,
            origin_airport_id=start.id,
            destination_airport_id=end.id,
            departure_time=departure,
            arrival_time=departure + timedelta(minutes=65),
            aircraft_type="Airbus A320",
            price=Decimal(price),
            total_seats=total_seats,
            available_seats=total_seats if available_seats is None else available_seats,
            status=status,
        )
        db.add(flight)
        db.commit()
        return flight

    return _make_flight


@pytest.fixture
def passenger_payload():
    def _payload(name: str = "Maria Silva", document: str = "12345678901") -> dict:
        return {
            "full_name": name,
            "document": document,
            "birth_date": "1990-04-12",
            "nationality": "Brasileira",
        }

    return _payload
