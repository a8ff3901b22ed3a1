import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def event_payload(**overrides) -> dict:
    payload = {
        "title": "Apéro au bar",
        "description": "Rencontre entre voyageurs",
        "hotel": {
            "name": "Hôtel Le Grand Paris",
            "address": "1 rue de Rivoli",
            "city": "Paris",
            "country": "France",
        },
        "event_date": "2025-10-17",
        "event_time": "19:00:00",
        "thematique": "apero",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def api_event(client: AsyncClient, auth_header):
    response = await client.post("/api/v1/events/", headers=auth_header, json=event_payload())
    assert response.status_code == 201
    return response.json()


async def test_create_event(client: AsyncClient, auth_header, api_user):
    response = await client.post("/api/v1/events/", headers=auth_header, json=event_payload())
    assert response.status_code == 201
    data = response.json()
    assert data["organizer_id"] == api_user.id
    assert data["organizer_name"] == "Alice"
    assert data["participants_count"] == 1
    assert data["hotel_name_lower"] == "hôtel le grand paris"
    assert data["visibility"] == "public"


async def test_create_event_validation_error(client: AsyncClient, auth_header):
    response = await client.post(
        "/api/v1/events/",
        headers=auth_header,
        json=event_payload(hotel={"name": "Ritz", "city": ""}),
    )
    assert response.status_code == 422
    assert response.json() == {
        "code": "validation_error",
        "message": response.json()["message"],
        "field": "hotel.city",
    }


async def test_create_event_daily_quota(client: AsyncClient, auth_header):
    for _ in range(3):
        response = await client.post("/api/v1/events/", headers=auth_header, json=event_payload())
        assert response.status_code == 201

    response = await client.post("/api/v1/events/", headers=auth_header, json=event_payload())
    assert response.status_code == 429
    assert response.json()["code"] == "quota_exceeded"


async def test_list_and_search_events(client: AsyncClient, auth_header, api_event):
    await client.post(
        "/api/v1/events/",
        headers=auth_header,
        json=event_payload(
            thematique="sport",
            hotel={"name": "Ibis Lyon Centre", "city": "Lyon"},
        ),
    )

    response = await client.get("/api/v1/events/", headers=auth_header)
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = await client.get(
        "/api/v1/events/", headers=auth_header, params={"thematique": "sport"}
    )
    assert [e["hotel_city"] for e in response.json()] == ["Lyon"]

    response = await client.get(
        "/api/v1/events/", headers=auth_header, params={"hotel": "hôtel le"}
    )
    assert [e["id"] for e in response.json()] == [api_event["id"]]

    response = await client.get(
        "/api/v1/events/", headers=auth_header, params={"city": "lyon"}
    )
    assert [e["thematique"] for e in response.json()] == ["sport"]

    response = await client.get(
        "/api/v1/events/", headers=auth_header, params={"window": "today"}
    )
    assert response.json() == []


async def test_blank_hotel_search_is_rejected(client: AsyncClient, auth_header):
    response = await client.get(
        "/api/v1/events/", headers=auth_header, params={"hotel": "   "}
    )
    assert response.status_code == 422
    assert response.json()["field"] == "hotel"


async def test_read_event(client: AsyncClient, auth_header, api_event):
    response = await client.get(f"/api/v1/events/{api_event['id']}", headers=auth_header)
    assert response.status_code == 200
    assert response.json()["title"] == "Apéro au bar"

    response = await client.get("/api/v1/events/missing", headers=auth_header)
    assert response.status_code == 404


async def test_join_and_leave_event(
    client: AsyncClient, auth_header, auth_header2, api_user2, api_event
):
    event_id = api_event["id"]

    response = await client.get(f"/api/v1/events/{event_id}/membership", headers=auth_header2)
    assert response.status_code == 200
    assert response.json() is None

    response = await client.post(f"/api/v1/events/{event_id}/join", headers=auth_header2)
    assert response.status_code == 200
    assert response.json()["role"] == "participant"
    assert response.json()["user_company"] == "Bruno SAS"

    response = await client.get(f"/api/v1/events/{event_id}/participants", headers=auth_header)
    roster = response.json()
    assert roster["size"] == 2
    assert {p["user_id"] for p in roster["participants"]} >= {api_user2.id}

    response = await client.get(f"/api/v1/events/{event_id}", headers=auth_header)
    assert response.json()["participants_count"] == 2

    response = await client.post(f"/api/v1/events/{event_id}/leave", headers=auth_header2)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/events/{event_id}", headers=auth_header)
    assert response.json()["participants_count"] == 1

    response = await client.post(f"/api/v1/events/{event_id}/leave", headers=auth_header2)
    assert response.status_code == 404


async def test_organizer_cannot_leave(client: AsyncClient, auth_header, api_event):
    response = await client.post(
        f"/api/v1/events/{api_event['id']}/leave", headers=auth_header
    )
    assert response.status_code == 409
    assert response.json()["code"] == "organizer_cannot_leave"


async def test_full_event(client: AsyncClient, auth_header, auth_header2, login_as, api_user3):
    response = await client.post(
        "/api/v1/events/", headers=auth_header, json=event_payload(max_participants=2)
    )
    event_id = response.json()["id"]
    await client.post(f"/api/v1/events/{event_id}/join", headers=auth_header2)

    response = await client.post(
        f"/api/v1/events/{event_id}/join", headers=await login_as(api_user3)
    )
    assert response.status_code == 409
    assert response.json()["code"] == "event_full"


async def test_organizer_events_on_profile(
    client: AsyncClient, auth_header, auth_header2, api_user, api_event
):
    await client.post(
        "/api/v1/events/", headers=auth_header, json=event_payload(visibility="private")
    )
    response = await client.get(f"/api/v1/users/{api_user.id}/events", headers=auth_header2)
    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == [api_event["id"]]
