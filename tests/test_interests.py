import pytest

from propertyhub.models import Interest
from propertyhub.services.mailer import EmailDeliveryError


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def mock_send_email(subject, html_body, reply_to=None, client=None):
        sent.append({"subject": subject, "html_body": html_body, "reply_to": reply_to})
        return f"email_{len(sent)}"
    monkeypatch.setattr("propertyhub.services.mailer.send_email", mock_send_email)
    return sent


@pytest.fixture
async def buyer(make_user):
    return await make_user(name="Asha Reddy", email="asha@example.com", mobile_number="9123456780")


@pytest.mark.asyncio
async def test_express_interest_in_project(client, auth, buyer, make_project, outbox, fetch):
    project = await make_project("Sarovar Zenith")
    auth.login(buyer)

    resp = await client.post(
        "/api/interests/express", json={"projectId": project.id, "message": "Is a 3BHK <east> facing?"}
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["interest"]["createdAt"]

    interest = await fetch(Interest, body["interest"]["id"])
    assert interest.user_id == buyer.id
    assert interest.project_id == project.id
    assert interest.property_id is None

    assert len(outbox) == 1
    assert outbox[0]["subject"] == "[Expression of Interest] Asha Reddy is interested in Sarovar Zenith"
    assert outbox[0]["reply_to"] == "asha@example.com"
    assert "Mobile: 9123456780" in outbox[0]["html_body"]
    assert "Is a 3BHK &lt;east&gt; facing?" in outbox[0]["html_body"]


@pytest.mark.asyncio
async def test_express_interest_names_property_target(client, auth, buyer, make_user, make_property,
                                                      make_project, outbox):
    owner = await make_user()
    standalone = await make_property(owner, street_address="Plot 7, Road No. 1")
    project = await make_project("Cyber Life")
    in_project = await make_property(owner, project_id=project.id)
    auth.login(buyer)

    await client.post("/api/interests/express", json={"propertyId": standalone.id})
    await client.post("/api/interests/express", json={"propertyId": in_project.id})
    assert [mail["subject"] for mail in outbox] == [
        "[Expression of Interest] Asha Reddy is interested in Property at Plot 7, Road No. 1",
        "[Expression of Interest] Asha Reddy is interested in Cyber Life",
    ]


@pytest.mark.asyncio
async def test_express_interest_twice_is_rejected(client, auth, buyer, make_project, outbox):
    project = await make_project()
    auth.login(buyer)

    first = await client.post("/api/interests/express", json={"projectId": project.id})
    second = await client.post("/api/interests/express", json={"projectId": project.id})
    assert first.status_code == 201
    assert second.status_code == 400
    assert second.json() == {"message": "Interest already expressed"}
    assert len(outbox) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicate_interest_is_rejected(client, auth, buyer, make_project, outbox, monkeypatch):
    project = await make_project()
    auth.login(buyer)
    assert (await client.post("/api/interests/express", json={"projectId": project.id})).status_code == 201

    # The duplicate check misses, as when another request commits between check and insert
    async def nothing_found(db, user_id, project_id, property_id):
        return None
    monkeypatch.setattr("propertyhub.services.interests._find_interest", nothing_found)

    resp = await client.post("/api/interests/express", json={"projectId": project.id})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Interest already expressed"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Either projectId or propertyId is required"),
        ({"projectId": " ", "propertyId": ""}, "Either projectId or propertyId is required"),
        ({"projectId": "a", "propertyId": "b"}, "Cannot express interest in both project and property simultaneously"),
    ],
)
async def test_express_interest_target_validation(client, auth, buyer, payload, message):
    auth.login(buyer)
    resp = await client.post("/api/interests/express", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"message": message}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"projectId": "no-such-project"}, "Project not found"),
        ({"propertyId": "no-such-property"}, "Property not found"),
    ],
)
async def test_express_interest_unknown_target(client, auth, buyer, payload, message):
    auth.login(buyer)
    resp = await client.post("/api/interests/express", json=payload)
    assert resp.status_code == 404
    assert resp.json() == {"message": message}


@pytest.mark.asyncio
async def test_email_failure_still_records_interest(client, auth, buyer, make_project, monkeypatch, fetch):
    async def failing_send_email(subject, html_body, reply_to=None, client=None):
        raise EmailDeliveryError("Email API failed with status 502")
    monkeypatch.setattr("propertyhub.services.mailer.send_email", failing_send_email)
    project = await make_project()
    auth.login(buyer)

    resp = await client.post("/api/interests/express", json={"projectId": project.id})
    assert resp.status_code == 201
    assert (await fetch(Interest, resp.json()["interest"]["id"])) is not None


@pytest.mark.asyncio
async def test_check_interest(client, auth, buyer, make_user, make_project, outbox):
    project = await make_project()
    auth.login(buyer)

    before = await client.get("/api/interests/check", params={"projectId": project.id})
    assert before.status_code == 200
    assert before.json() == {"hasExpressed": False, "interest": None}

    expressed = await client.post("/api/interests/express", json={"projectId": project.id})
    after = await client.get("/api/interests/check", params={"projectId": project.id})
    assert after.json()["hasExpressed"] is True
    assert after.json()["interest"]["id"] == expressed.json()["interest"]["id"]

    auth.login(await make_user())
    other = await client.get("/api/interests/check", params={"projectId": project.id})
    assert other.json()["hasExpressed"] is False


@pytest.mark.asyncio
async def test_check_interest_validation(client, auth, buyer):
    auth.login(buyer)
    resp = await client.get("/api/interests/check", params={"projectId": "a", "propertyId": "b"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Cannot express interest in both project and property simultaneously"}
