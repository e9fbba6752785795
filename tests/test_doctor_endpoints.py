"""Tests for doctor directory endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import insert

from app.models.doctor_ratings import doctor_ratings

BASE = "/api/v1/doctors"


# ============================================================================
# Listing and search
# ============================================================================


@pytest.mark.asyncio
async def test_list_doctors_anonymous(client: AsyncClient, doctor_id):
    response = await client.get(f"{BASE}/")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == str(doctor_id)
    assert data[0]["rating"] == 0
    assert data[0]["contact"]["city"] == "Rochester"


@pytest.mark.asyncio
async def test_list_doctors_filters(client: AsyncClient, make_doctor):
    await make_doctor(name="Dr. Sarah Johnson", specialty="Cardiology", hospital="Mayo Clinic")
    await make_doctor(
        name="Dr. Michael Chen",
        specialty="Neurology",
        hospital="Johns Hopkins Hospital",
        city="Baltimore",
        region="Maryland",
    )
    await make_doctor(
        name="Dr. Emily Rodriguez",
        specialty="Pediatrics",
        hospital="Boston Children's Hospital",
        city="Boston",
        region="Massachusetts",
    )

    async def names(**params) -> set[str]:
        response = await client.get(f"{BASE}/", params=params)
        assert response.status_code == 200
        return {d["name"] for d in response.json()}

    assert await names(specialty="Neurology") == {"Dr. Michael Chen"}
    assert await names(search="hopkins") == {"Dr. Michael Chen"}
    assert await names(search="EMILY") == {"Dr. Emily Rodriguez"}
    assert await names(search="cardio") == {"Dr. Sarah Johnson"}
    assert await names(city="bost") == {"Dr. Emily Rodriguez"}
    assert await names(region="mary") == {"Dr. Michael Chen"}
    assert await names(search="   ") == {
        "Dr. Sarah Johnson",
        "Dr. Michael Chen",
        "Dr. Emily Rodriguez",
    }
    assert await names(specialty="Dermatology") == set()


@pytest.mark.asyncio
async def test_list_doctors_best_rated_first(
    client: AsyncClient, make_doctor, patient_headers
):
    low = await make_doctor(name="Dr. Low")
    high = await make_doctor(name="Dr. High")
    await client.put(f"{BASE}/{low}/ratings", json={"rating": 2}, headers=patient_headers)
    await client.put(f"{BASE}/{high}/ratings", json={"rating": 5}, headers=patient_headers)

    response = await client.get(f"{BASE}/")
    assert [d["name"] for d in response.json()] == ["Dr. High", "Dr. Low"]


@pytest.mark.asyncio
async def test_list_doctors_pagination(client: AsyncClient, make_doctor):
    for i in range(5):
        await make_doctor(name=f"Dr. Number {i}")

    response = await client.get(f"{BASE}/", params={"skip": 2, "limit": 2})
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = await client.get(f"{BASE}/", params={"limit": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_specialties(client: AsyncClient, make_doctor):
    await make_doctor(specialty="Neurology")
    await make_doctor(specialty="Cardiology")
    await make_doctor(specialty="Cardiology")

    response = await client.get(f"{BASE}/specialties")
    assert response.status_code == 200
    assert response.json() == ["Cardiology", "Neurology"]


# ============================================================================
# Detail
# ============================================================================


@pytest.mark.asyncio
async def test_get_doctor_detail_anonymous(client: AsyncClient, doctor_id):
    response = await client.get(f"{BASE}/{doctor_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Dr. Sarah Johnson"
    assert data["is_verified"] is False
    assert data["verification_state"] == "unclaimed"
    assert data["can_manage"] is False


@pytest.mark.asyncio
async def test_get_doctor_detail_for_creator(
    client: AsyncClient, make_doctor, doctor_user_id, doctor_headers
):
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)

    response = await client.get(f"{BASE}/{doctor_id}", headers=doctor_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["is_verified"] is True
    assert data["verification_state"] == "implicitly_verified"
    assert data["can_manage"] is True


@pytest.mark.asyncio
async def test_get_doctor_detail_heals_rating(
    client: AsyncClient, db_session, doctor_id, patient_id
):
    # Written behind the service's back, so the stored average is stale
    await db_session.execute(
        insert(doctor_ratings).values(doctor_id=doctor_id, user_id=patient_id, rating=4)
    )
    await db_session.commit()

    response = await client.get(f"{BASE}/{doctor_id}")
    assert response.status_code == 200
    assert response.json()["rating"] == 4.0


@pytest.mark.asyncio
async def test_get_doctor_not_found(client: AsyncClient):
    response = await client.get(f"{BASE}/{uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundException"


@pytest.mark.asyncio
async def test_get_doctor_invalid_token(client: AsyncClient, doctor_id):
    response = await client.get(
        f"{BASE}/{doctor_id}", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


# ============================================================================
# Create and update
# ============================================================================


@pytest.mark.asyncio
async def test_doctor_account_creates_one_profile(
    client: AsyncClient, doctor_user_id, doctor_headers, sample_doctor_data
):
    response = await client.post(f"{BASE}/", json=sample_doctor_data, headers=doctor_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == sample_doctor_data["name"]
    assert data["rating"] == 0
    assert data["created_by_user_id"] == str(doctor_user_id)
    assert data["subspecialties"] == ["Stroke", "Epilepsy"]
    assert data["contact"]["region"] == "Maryland"

    second = dict(sample_doctor_data, name="Dr. Second Attempt")
    response = await client.post(f"{BASE}/", json=second, headers=doctor_headers)
    assert response.status_code == 403

    listing = await client.get(f"{BASE}/", params={"search": "Second Attempt"})
    assert listing.json() == []


@pytest.mark.asyncio
async def test_patient_cannot_create_profile(
    client: AsyncClient, patient_headers, sample_doctor_data
):
    response = await client.post(f"{BASE}/", json=sample_doctor_data, headers=patient_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_requires_sign_in(client: AsyncClient, sample_doctor_data):
    response = await client.post(f"{BASE}/", json=sample_doctor_data)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_validates_payload(client: AsyncClient, doctor_headers):
    response = await client.post(
        f"{BASE}/", json={"name": "", "specialty": "Cardiology"}, headers=doctor_headers
    )
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_creator_updates_profile(
    client: AsyncClient, make_doctor, doctor_user_id, doctor_headers
):
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)

    response = await client.put(
        f"{BASE}/{doctor_id}",
        json={"bio": "Updated bio", "accepting_new_patients": False},
        headers=doctor_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["bio"] == "Updated bio"
    assert data["accepting_new_patients"] is False
    assert data["hospital"] == "Mayo Clinic"


@pytest.mark.asyncio
async def test_non_owner_cannot_update(
    client: AsyncClient, make_doctor, doctor_user_id, patient_headers
):
    doctor_id = await make_doctor(created_by_user_id=doctor_user_id)

    response = await client.put(
        f"{BASE}/{doctor_id}", json={"bio": "Hijacked"}, headers=patient_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_unknown_doctor(client: AsyncClient, doctor_headers):
    response = await client.put(f"{BASE}/{uuid4()}", json={"bio": "x"}, headers=doctor_headers)
    assert response.status_code == 404


# ============================================================================
# Claims
# ============================================================================


@pytest.mark.asyncio
async def test_claim_flow(client: AsyncClient, doctor_id, doctor_user_id, doctor_headers):
    status_response = await client.get(f"{BASE}/{doctor_id}/verification", headers=doctor_headers)
    assert status_response.status_code == 200
    assert status_response.json()["can_claim"] is True
    assert status_response.json()["can_manage"] is False

    response = await client.post(f"{BASE}/{doctor_id}/claim", headers=doctor_headers)
    assert response.status_code == 201
    claim = response.json()
    assert claim["user_id"] == str(doctor_user_id)
    assert claim["verified"] is True

    status_response = await client.get(f"{BASE}/{doctor_id}/verification", headers=doctor_headers)
    data = status_response.json()
    assert data["verification_state"] == "explicitly_verified"
    assert data["is_verified"] is True
    assert data["can_manage"] is True
    assert data["can_claim"] is False

    update = await client.put(
        f"{BASE}/{doctor_id}", json={"bio": "Now mine"}, headers=doctor_headers
    )
    assert update.status_code == 200

    mine = await client.get(f"{BASE}/mine", headers=doctor_headers)
    assert [d["id"] for d in mine.json()] == [str(doctor_id)]


@pytest.mark.asyncio
async def test_second_claim_conflicts(
    client: AsyncClient, make_doctor, doctor_headers
):
    first = await make_doctor()
    second = await make_doctor(name="Dr. Other")

    assert (await client.post(f"{BASE}/{first}/claim", headers=doctor_headers)).status_code == 201

    response = await client.post(f"{BASE}/{second}/claim", headers=doctor_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyClaimedElsewhereException"


@pytest.mark.asyncio
async def test_anonymous_claim_rejected(client: AsyncClient, doctor_id):
    response = await client.post(f"{BASE}/{doctor_id}/claim")
    assert response.status_code == 401

    status_response = await client.get(f"{BASE}/{doctor_id}/verification")
    assert status_response.json()["can_claim"] is False


@pytest.mark.asyncio
async def test_claim_unknown_doctor(client: AsyncClient, doctor_headers):
    response = await client.post(f"{BASE}/{uuid4()}/claim", headers=doctor_headers)
    assert response.status_code == 404

    response = await client.get(f"{BASE}/{uuid4()}/verification")
    assert response.status_code == 404

