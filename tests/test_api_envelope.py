from datetime import datetime, timezone

import pytest

from conftest import FakeResult, dml_handler, entity_handler, make_member, make_sacco_member, make_user, sequence_handler

from uthabiti.api import deps
from uthabiti.main import app
from uthabiti.models import ActivityLog, Member, Notification, SaccoMember


@pytest.fixture
def as_user(override_deps):
    """Swap the authenticated user for the duration of a test."""

    def _as(user):
        async def _get_user():
            return user

        app.dependency_overrides[deps.require_authenticated_user] = _get_user
        app.dependency_overrides[deps.get_current_user] = _get_user
        return user

    return _as


def test_list_members_is_enveloped(client, fake_db):
    member = make_member()
    fake_db.on_execute(entity_handler(Member, FakeResult(items=[member])))

    response = client.get("/api/v1/members")

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "ok"
    assert body["details"] == {}
    [row] = body["data"]
    assert row["membership_no"] == member.membership_no
    assert row["status"] == "Active"


def test_member_not_found_carries_next_view(client):
    response = client.get("/api/v1/members/404")

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "not_found"
    assert body["message"] == "Member not found"
    assert body["data"] is None
    assert body["details"]["next_view"] == "members"


def test_missing_permission_is_forbidden_and_logged(client, fake_db, as_user):
    as_user(make_user(role="Viewer", email="viewer@example.com"))

    response = client.post("/api/v1/members/1/status", json={"reason": "Arrears"})

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "forbidden"
    assert "member.status.manage" in body["message"]
    [entry] = fake_db.added_of(ActivityLog)
    assert entry.action == "ACCESS_DENIED"
    assert fake_db.committed


def test_request_validation_error_envelope(client):
    response = client.post("/api/v1/registrations", json={"first_name": "Jane"})

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"]


def test_start_registration_flashes_next_step(client, fake_db):
    response = client.post(
        "/api/v1/registrations",
        json={
            "first_name": "Jane",
            "last_name": "Wanjiku",
            "email": "jane@example.com",
            "membership_type": "Individual",
            "county": "Mombasa",
            "sub_county": "Changamwe",
            "ward": "Port Reitz",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["code"] == "created"
    assert "001-001-01-" in body["message"]
    assert body["details"]["next_view"] == "add-member-profile"
    assert body["data"]["workflow"]["step"] == "profile"
    assert body["data"]["steps"] == ["profile", "benefits", "confirm"]
    assert fake_db.committed


def test_service_validation_failure_maps_to_422(client, fake_db):
    sacco_member = make_sacco_member()
    fake_db.on_execute(entity_handler(SaccoMember, FakeResult(scalar=sacco_member)))

    response = client.post(
        "/api/v1/sacco/contributions",
        json={
            "sacco_member_id": sacco_member.id,
            "contribution_type": "Shares",
            "amount": "0",
            "payment_method": "Cash",
        },
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["message"] == "Amount must be greater than zero!"
    assert body["details"]["next_view"] == "sacco-contributions"
    assert not fake_db.committed


def test_post_contribution_returns_created(client, fake_db):
    sacco_member = make_sacco_member(savings="100")
    fake_db.on_execute(entity_handler(SaccoMember, FakeResult(scalar=sacco_member)))

    response = client.post(
        "/api/v1/sacco/contributions",
        json={
            "sacco_member_id": sacco_member.id,
            "contribution_type": "Savings",
            "amount": "250",
            "payment_method": "M-Pesa",
            "reference_no": "",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["data"]["contribution_type"] == "Savings"
    assert body["data"]["reference_no"] is None
    assert body["message"] == "Contribution recorded successfully!"
    assert fake_db.committed


def test_sweep_overdue_endpoint(client, fake_db):
    fake_db.on_execute(dml_handler(FakeResult(rowcount=2)))

    response = client.post("/api/v1/sacco/loans/sweep-overdue")

    assert response.status_code == 200
    assert response.json()["data"] == {"defaulted": 2}


def test_regions_are_public(client):
    response = client.get("/api/v1/regions/counties/Mombasa/subcounties")
    assert response.status_code == 200
    names = [row["name"] for row in response.json()["data"]]
    assert "Changamwe" in names

    missing = client.get("/api/v1/regions/counties/Nowhere/subcounties")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


def test_self_service_returns_callers_member(client, fake_db, as_user):
    user = as_user(make_user(role="Member", email="jane@example.com"))
    member = make_member(user_id=user.id)
    fake_db.on_execute(entity_handler(Member, FakeResult(scalar=member)))

    response = client.get("/api/v1/me/member")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["member"]["id"] == member.id
    assert data["profile"] is None
    assert data["facilities"] == []


def test_staff_cannot_use_self_service(client):
    response = client.get("/api/v1/me/member")
    assert response.status_code == 403


def test_inbox_counts_unread(client, fake_db):
    notification = Notification(
        id=3,
        sender_id=9,
        receiver_id="Admin",
        title="Member Registration",
        content="New member has submitted details for approval.",
        status="Unread",
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )
    fake_db.on_execute(sequence_handler([FakeResult(scalar=4), FakeResult(items=[notification])]))

    response = client.get("/api/v1/notifications")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["unread"] == 4
    assert data["items"][0]["title"] == "Member Registration"
