"""Caregiver directory API tests.

Pattern: test_<verb>_<noun>_<scenario>
"""

import pytest
from beanie import PydanticObjectId

from carelink.features.caregivers.models import CaregiverLink
from carelink.features.caregivers.service import CaregiverService


API = "/api/v1/caregivers"
ALL_FLAGS = [
    "view_symptoms",
    "view_medicines",
    "view_vitals",
    "view_appointments",
    "receive_alerts",
    "receive_sos",
]


async def set_status(link_id: str, status: str):
    link = await CaregiverLink.get(PydanticObjectId(link_id))
    link.status = status
    await link.save()


# ═══════════════════════════════════════════════════════════
# Invite
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_invite_caregiver_defaults(client, patient):
    """A fresh invite is pending with every permission enabled."""
    _, headers = patient
    resp = await client.post(f"{API}/invite", json={"email": "b@x.com"}, headers=headers)
    assert resp.status_code == 201

    link = resp.json()["link"]
    assert link["status"] == "pending"
    assert link["caregiver_email"] == "b@x.com"
    assert link["relationship"] == "Family"
    assert link["name"] == "Pending Caregiver"
    assert link["caregiver"] == {"kind": "unlinked"}
    assert all(link["permissions"][flag] is True for flag in ALL_FLAGS)


@pytest.mark.asyncio
async def test_invite_caregiver_twice_conflicts(client, patient):
    """The second invite for the same email fails and only one link exists."""
    user, headers = patient
    first = await client.post(f"{API}/invite", json={"email": "b@x.com"}, headers=headers)
    second = await client.post(f"{API}/invite", json={"email": "B@x.com"}, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["success"] is False
    assert "already" in second.json()["message"]

    count = await CaregiverLink.find(
        CaregiverLink.patient_id == str(user.id),
        CaregiverLink.caregiver_email == "b@x.com",
    ).count()
    assert count == 1


@pytest.mark.asyncio
async def test_invite_caregiver_self_rejected(client, patient):
    """Inviting your own email fails whatever else is supplied."""
    _, headers = patient
    resp = await client.post(
        f"{API}/invite",
        json={
            "email": "ASHA@example.com",
            "relationship": "Self",
            "name": "Me",
            "permissions": {"receiveSOS": False},
        },
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "You cannot invite yourself as a caregiver."
    assert await CaregiverLink.find_all().count() == 0


@pytest.mark.asyncio
async def test_invite_registered_caregiver_prelinks(client, patient, caregiver):
    """An email that belongs to an account is linked immediately but stays pending."""
    _, headers = patient
    cg_user, _ = caregiver
    resp = await client.post(
        f"{API}/invite",
        json={"email": "ravi@example.com", "relationship": "Son", "name": "Ignored"},
        headers=headers,
    )
    assert resp.status_code == 201

    link = resp.json()["link"]
    assert link["status"] == "pending"
    assert link["caregiver"] == {"kind": "linked", "user_id": str(cg_user.id)}
    assert link["name"] == "Ravi Verma"
    assert link["relationship"] == "Son"


@pytest.mark.asyncio
async def test_invite_caregiver_custom_permissions(client, patient):
    """Permissions accept the camelCase names sent by the web client."""
    _, headers = patient
    resp = await client.post(
        f"{API}/invite",
        json={
            "email": "b@x.com",
            "permissions": {"viewVitals": False, "receiveSOS": False},
        },
        headers=headers,
    )
    perms = resp.json()["link"]["permissions"]
    assert perms["view_vitals"] is False
    assert perms["receive_sos"] is False
    assert perms["view_symptoms"] is True


@pytest.mark.asyncio
async def test_invite_caregiver_invalid_email(client, patient):
    """Validation errors come back in the shared error envelope."""
    _, headers = patient
    resp = await client.post(f"{API}/invite", json={"email": "not-an-email"}, headers=headers)
    assert resp.status_code == 422

    body = resp.json()
    assert body["success"] is False
    assert "email" in body["message"]
    assert body["detail"]["errors"][0]["loc"] == ["body", "email"]
    assert await CaregiverLink.find_all().count() == 0


@pytest.mark.asyncio
async def test_invite_caregiver_requires_auth(client):
    resp = await client.post(f"{API}/invite", json={"email": "b@x.com"})
    assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════
# Listing
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_caregivers_all_statuses(client, patient, caregiver):
    """The patient sees every link, with the caregiver profile when linked."""
    _, headers = patient
    first = await client.post(f"{API}/invite", json={"email": "ravi@example.com"}, headers=headers)
    second = await client.post(f"{API}/invite", json={"email": "b@x.com"}, headers=headers)
    await set_status(second.json()["link"]["id"], "rejected")

    resp = await client.get(API, headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2

    by_email = {link["caregiver_email"]: link for link in data["links"]}
    assert by_email["ravi@example.com"]["caregiver_profile"]["name"] == "Ravi Verma"
    assert by_email["b@x.com"]["caregiver_profile"] is None
    assert by_email["b@x.com"]["status"] == "rejected"
    assert first.json()["link"]["id"] in {link["id"] for link in data["links"]}


@pytest.mark.asyncio
async def test_list_patients_only_active(client, make_user, caregiver):
    """A caregiver never sees pending or rejected links."""
    cg_user, cg_headers = caregiver
    statuses = {"p1@example.com": "pending", "p2@example.com": "active", "p3@example.com": "rejected"}

    for email, status in statuses.items():
        _, headers = await make_user(email.split("@")[0], email)
        resp = await client.post(f"{API}/invite", json={"email": "ravi@example.com"}, headers=headers)
        await set_status(resp.json()["link"]["id"], status)

    resp = await client.get(f"{API}/patients", headers=cg_headers)
    assert resp.status_code == 200
    links = resp.json()["links"]
    assert len(links) == 1
    assert links[0]["status"] == "active"
    assert links[0]["patient_profile"]["email"] == "p2@example.com"


@pytest.mark.asyncio
async def test_list_patients_matches_email_before_linking(client, patient, make_user):
    """An invite sent before the caregiver registered is found by email."""
    _, headers = patient
    resp = await client.post(f"{API}/invite", json={"email": "late@example.com"}, headers=headers)
    await set_status(resp.json()["link"]["id"], "active")

    _, late_headers = await make_user("Late Joiner", "late@example.com")
    resp = await client.get(f"{API}/patients", headers=late_headers)
    assert resp.json()["total"] == 1


@pytest.mark.asyncio
async def test_list_patients_requires_auth(client):
    resp = await client.get(f"{API}/patients")
    assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════
# Accept / reject
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_accept_invitation_links_caregiver(client, patient, make_user):
    """Accepting activates the link and records the caregiver's account."""
    _, headers = patient
    invite = await client.post(f"{API}/invite", json={"email": "new@example.com"}, headers=headers)
    link_id = invite.json()["link"]["id"]

    cg_user, cg_headers = await make_user("New Caregiver", "new@example.com")
    resp = await client.post(f"{API}/{link_id}/accept", headers=cg_headers)
    assert resp.status_code == 200

    link = resp.json()["link"]
    assert link["status"] == "active"
    assert link["caregiver"] == {"kind": "linked", "user_id": str(cg_user.id)}
    assert link["name"] == "New Caregiver"


@pytest.mark.asyncio
async def test_reject_invitation(client, patient, caregiver):
    _, headers = patient
    _, cg_headers = caregiver
    invite = await client.post(f"{API}/invite", json={"email": "ravi@example.com"}, headers=headers)
    link_id = invite.json()["link"]["id"]

    resp = await client.post(f"{API}/{link_id}/reject", headers=cg_headers)
    assert resp.status_code == 200
    assert resp.json()["link"]["status"] == "rejected"

    again = await client.post(f"{API}/{link_id}/accept", headers=cg_headers)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_accept_invitation_by_someone_else_not_found(client, patient, make_user):
    _, headers = patient
    invite = await client.post(f"{API}/invite", json={"email": "b@x.com"}, headers=headers)
    link_id = invite.json()["link"]["id"]

    _, other_headers = await make_user("Stranger", "stranger@example.com")
    resp = await client.post(f"{API}/{link_id}/accept", headers=other_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_accept_unknown_invitation_not_found(client, caregiver):
    _, cg_headers = caregiver
    resp = await client.post(f"{API}/not-an-id/accept", headers=cg_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Caregiver not found"


# ═══════════════════════════════════════════════════════════
# Permissions and recipient resolution
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_permissions_partial(client, patient):
    _, headers = patient
    invite = await client.post(f"{API}/invite", json={"email": "b@x.com"}, headers=headers)
    link_id = invite.json()["link"]["id"]

    resp = await client.patch(
        f"{API}/{link_id}/permissions",
        json={"receiveSOS": False},
        headers=headers,
    )
    assert resp.status_code == 200
    perms = resp.json()["link"]["permissions"]
    assert perms["receive_sos"] is False
    assert perms["receive_alerts"] is True


@pytest.mark.asyncio
async def test_update_permissions_of_other_patient_not_found(client, patient, make_user):
    _, headers = patient
    invite = await client.post(f"{API}/invite", json={"email": "b@x.com"}, headers=headers)
    link_id = invite.json()["link"]["id"]

    _, other_headers = await make_user("Other Patient", "other@example.com")
    resp = await client.patch(
        f"{API}/{link_id}/permissions",
        json={"receive_sos": False},
        headers=other_headers,
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_resolve_alert_recipients_filters_status_and_flag(patient):
    """Only active links with receive_sos enabled are alert recipients."""
    user, _ = patient
    patient_id = str(user.id)

    active = await CaregiverService.invite(user, "active@example.com")
    muted = await CaregiverService.invite(user, "muted@example.com")
    await CaregiverService.invite(user, "pending@example.com")

    await set_status(str(active.id), "active")
    await set_status(str(muted.id), "active")
    muted = await CaregiverLink.get(muted.id)
    muted.permissions.receive_sos = False
    await muted.save()

    assert await CaregiverService.resolve_alert_recipients(patient_id) == ["active@example.com"]

    # Toggling either condition moves a caregiver in or out
    muted.permissions.receive_sos = True
    await muted.save()
    await set_status(str(active.id), "rejected")

    assert await CaregiverService.resolve_alert_recipients(patient_id) == ["muted@example.com"]


@pytest.mark.asyncio
async def test_has_access_patient_and_active_caregiver(patient, caregiver, make_user):
    user, _ = patient
    cg_user, _ = caregiver
    stranger, _ = await make_user("Stranger", "stranger@example.com")
    patient_id = str(user.id)

    link = await CaregiverService.invite(user, cg_user.email)

    assert await CaregiverService.has_access(patient_id, user.email, patient_id)
    assert not await CaregiverService.has_access(str(cg_user.id), cg_user.email, patient_id)

    await set_status(str(link.id), "active")
    assert await CaregiverService.has_access(str(cg_user.id), cg_user.email, patient_id)
    assert not await CaregiverService.has_access(str(stranger.id), stranger.email, patient_id)
