from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from flight_booking.domain.state_machine import FlightStatus
from flight_booking.infrastructure.db.models import Airline, Airport, Base, Flight
from flight_booking.infrastructure.db.session import SessionLocal, engine


def _dt(days_from_now: int, hour: int, minute: int) -> datetime:
    brt = timezone(timedelta(hours=-3))
    now_brt = datetime.now(brt)
    target = now_brt + timedelta(days=days_from_now)
    return target.replace(hour=hour, minute=minute, second=0, microsecond=0).astimezone(timezone.utc)


AIRLINES = [
    {"name": "LATAM Airlines", "code": "LA"},
    {"name": "GOL Linhas Aéreas", "code": "G3"},
    {"name": "Azul Linhas Aéreas", "code": "AD"},
]

AIRPORTS = [
    {"name": "Aeroporto de Guarulhos", "code": "GRU", "city": "São Paulo"},
    {"name": "Aeroporto Santos Dumont", "code": "SDU", "city": "Rio de Janeiro"},
    {"name": "Aeroporto de Brasília", "code": "BSB", "city": "Brasília"},
    {"name": "Aeroporto de Confins", "code": "CNF", "city": "Belo Horizonte"},
]

FLIGHTS = [
    {
        "flight_number": "LA3001",
        "airline": "LA",
        "origin": "GRU",
        "destination": "SDU",
        "departure": (3, 8, 0),
        "duration_minutes": 65,
        "aircraft_type": "Airbus A320",
        "price": Decimal("450.00"),
        "total_seats": 174,
    },
    {
        "flight_number": "G31402",
        "airline": "G3",
        "origin": "GRU",
        "destination": "BSB",
        "departure": (3, 14, 30),
        "duration_minutes": 100,
        "aircraft_type": "Boeing 737-800",
        "price": Decimal("620.90"),
        "total_seats": 186,
    },
    {
        "flight_number": "AD4520",
        "airline": "AD",
        "origin": "CNF",
        "destination": "SDU",
        "departure": (5, 19, 15),
        "duration_minutes": 70,
        "aircraft_type": "Embraer E195",
        "price": Decimal("389.50"),
        "total_seats": 118,
    },
]


def _upsert_by_code(db, model, items: list[dict], **defaults) -> dict:
    by_code = {}
    for item in items:
        existing = db.execute(
            select(model).where(model.code == item["code"])
        ).scalar_one_or_none()
        if existing:
            for key, value in item.items():
                setattr(existing, key, value)
            by_code[item["code"]] = existing
            continue

        row = model(**defaults, **item)
        db.add(row)
        by_code[item["code"]] = row

    db.flush()
    return by_code


def seed_flights(db) -> None:
    airlines = _upsert_by_code(db, Airline, AIRLINES)
    airports = _upsert_by_code(
        db,
        Airport,
        AIRPORTS,
        country="Brasil",
        timezone="America/Sao_Paulo",
    )

    for item in FLIGHTS:
        departure = _dt(*item["departure"])
        existing = db.execute(
            select(Flight).where(Flight.flight_number == item["flight_number"])
        ).scalar_one_or_none()
        if existing:
            # Seat counters belong to the ledger; only schedule and fare are refreshed.
            existing.departure_time = departure
            existing.arrival_time = departure + timedelta(minutes=item["duration_minutes"])
            existing.price = item["price"]
            continue

        db.add(
            Flight(
                flight_number=item["flight_number"],
                airline_id=airlines[item["airline"]].id,
                origin_airport_id=airports[item["origin"]].id,
                destination_airport_id=airports[item["destination"]].id,
                departure_time=departure,
                arrival_time=departure + timedelta(minutes=item["duration_minutes"]),
                aircraft_type=item["aircraft_type"],
                price=item["price"],
                total_seats=item["total_seats"],
                available_seats=item["total_seats"],
                status=FlightStatus.SCHEDULED,
            )
        )


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_flights(db)
        db.commit()
        print("Seed complete: airlines, airports and scheduled flights added.")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
