from decimal import Decimal

USER = {"X-User-Id": "user-1"}
ADMIN = {"X-User-Id": "ops-1", "X-User-Role": "admin"}


def _book(client, flight_id, passenger, headers=USER):
    response = client.post(
        "/bookings",
        json={"flight_id": flight_id, "passengers": [passenger]},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def _paid_booking(client, flight_id, passenger, headers=USER):
    booking = _book(client, flight_id, passenger, headers)
    intent = client.post(
        "/payments/pix",
        json={"booking_id": booking["id"], "amount": booking["total_price"]},
        headers=headers,
    ).json()
    paid = client.post("/payments/pix/simulate", json={"pix_code": intent["pix_code"]})
    assert paid.json()["booking_status"] == "confirmed"
    return booking


# ---------------------
# POPULAR ROUTES
# ---------------------

def test_popular_routes_rank_paid_bookings(client, make_flight, passenger_payload):
    morning = make_flight(price="450.00")
    cheap = make_flight(price="399.90")
    inbound = make_flight(price="500.00", reverse=True)

    _paid_booking(client, morning.id, passenger_payload())
    _paid_booking(client, morning.id, passenger_payload())
    _paid_booking(client, cheap.id, passenger_payload())
    _paid_booking(client, inbound.id, passenger_payload())
    # Unpaid bookings do not count.
    _book(client, inbound.id, passenger_payload())
    _book(client, inbound.id, passenger_payload())

    routes = client.get("/flights/popular-routes").json()

    assert [(r["origin_code"], r["destination_code"], r["booking_count"]) for r in routes] == [
        ("GRU", "SDU", 3),
        ("SDU", "GRU", 1),
    ]
    assert Decimal(routes[0]["min_price"]) == Decimal("399.90")
    assert routes[0]["origin_city"] == "São Paulo"


def test_popular_routes_limit(client, make_flight, passenger_payload):
    _paid_booking(client, make_flight().id, passenger_payload())
    _paid_booking(client, make_flight(reverse=True).id, passenger_payload())

    assert len(client.get("/flights/popular-routes", params={"limit": 1}).json()) == 1
    assert client.get("/flights/popular-routes", params={"limit": 0}).status_code == 422


def test_no_paid_bookings_means_no_popular_routes(client, make_flight, passenger_payload):
    _book(client, make_flight().id, passenger_payload())

    assert client.get("/flights/popular-routes").json() == []


# ---------------------
# SEAT AVAILABILITY
# ---------------------

def test_seat_availability(client, make_flight):
    flight = make_flight(total_seats=10, available_seats=2)

    enough = client.get(f"/flights/{flight.id}/availability", params={"seats": 2}).json()
    too_many = client.get(f"/flights/{flight.id}/availability", params={"seats": 3}).json()

    assert enough == {
        "flight_id": flight.id,
        "requested_seats": 2,
        "available_seats": 2,
        "available": True,
    }
    assert too_many["available"] is False


def test_seat_availability_defaults_to_one_seat(client, make_flight):
    flight = make_flight(total_seats=4, available_seats=0)

    body = client.get(f"/flights/{flight.id}/availability").json()

    assert body["requested_seats"] == 1
    assert body["available"] is False


def test_seat_availability_errors(client, make_flight):
    flight = make_flight()

    assert client.get("/flights/missing/availability").status_code == 404
    assert client.get(f"/flights/{flight.id}/availability", params={"seats": 0}).status_code == 422


# ---------------------
# FLIGHT STATUS
# ---------------------

def test_admin_can_update_flight_status(client, make_flight):
    flight = make_flight()

    response = client.put(f"/flights/{flight.id}/status", json={"status": "delayed"}, headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["status"] == "delayed"
    assert client.get(f"/flights/{flight.id}").json()["status"] == "delayed"


def test_flight_status_requires_admin(client, make_flight):
    flight = make_flight()

    assert client.put(f"/flights/{flight.id}/status", json={"status": "cancelled"}).status_code == 401
    forbidden = client.put(f"/flights/{flight.id}/status", json={"status": "cancelled"}, headers=USER)
    assert forbidden.status_code == 403
    assert client.get(f"/flights/{flight.id}").json()["status"] == "scheduled"


def test_flight_status_errors(client, make_flight):
    flight = make_flight()

    missing = client.put("/flights/missing/status", json={"status": "delayed"}, headers=ADMIN)
    assert missing.status_code == 404
    invalid = client.put(f"/flights/{flight.id}/status", json={"status": "landed"}, headers=ADMIN)
    assert invalid.status_code == 422


def test_unscheduled_flight_leaves_search_but_keeps_bookings(client, make_flight, passenger_payload):
    flight = make_flight()
    booking = _book(client, flight.id, passenger_payload())
    search = {"origin": "GRU", "destination": "SDU", "departure_date": "2030-05-10"}
    assert client.get("/flights/search", params=search).json()["meta"]["total"] == 1

    client.put(f"/flights/{flight.id}/status", json={"status": "cancelled"}, headers=ADMIN)

    assert client.get("/flights/search", params=search).json()["meta"]["total"] == 0
    detail = client.get(f"/bookings/{booking['id']}", headers=USER).json()
    assert detail["status"] == "pending"
    assert detail["flight"]["available_seats"] == 9


# ---------------------
# USER STATISTICS
# ---------------------

def test_user_statistics(client, make_flight, passenger_payload):
    outbound = make_flight(price="450.00")
    inbound = make_flight(price="500.00", reverse=True)

    completed = _paid_booking(client, outbound.id, passenger_payload())
    client.put(f"/bookings/{completed['id']}/status", json={"status": "completed"}, headers=USER)
    _paid_booking(client, inbound.id, passenger_payload())
    cancelled = _book(client, outbound.id, passenger_payload())
    client.delete(f"/bookings/{cancelled['id']}", headers=USER)
    _book(client, outbound.id, passenger_payload())
    # Another user's spending stays out.
    _paid_booking(client, outbound.id, passenger_payload(), headers={"X-User-Id": "user-2"})

    response = client.get("/users/statistics", headers=USER)

    assert response.status_code == 200
    body = response.json()
    assert body["confirmed_bookings"] == 1
    assert body["completed_trips"] == 1
    assert body["cancelled_bookings"] == 1
    assert Decimal(body["total_spent"]) == Decimal("950.00")
    assert body["cities_visited"] == 2


def test_statistics_for_new_user(client):
    body = client.get("/users/statistics", headers={"X-User-Id": "newcomer"}).json()

    assert body["confirmed_bookings"] == 0
    assert body["completed_trips"] == 0
    assert body["cancelled_bookings"] == 0
    assert Decimal(body["total_spent"]) == Decimal("0")
    assert body["cities_visited"] == 0


def test_statistics_require_identity(client):
    assert client.get("/users/statistics").status_code == 401
