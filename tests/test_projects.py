from datetime import datetime, timezone

import pytest

from propertyhub.models import Builder, Interest, ListingStatus, Project, Property


@pytest.mark.asyncio
async def test_list_builders_with_project_counts(client, make_builder, make_project):
    aparna = await make_builder("Aparna Constructions")
    await make_builder("My Home Group")
    await make_project("Sarovar Zenith", builder=aparna)
    await make_project("Cyber Life", builder=aparna)

    resp = await client.get("/api/builders")
    assert resp.status_code == 200
    body = resp.json()
    assert [(b["name"], b["projectCount"]) for b in body["builders"]] == [
        ("Aparna Constructions", 2),
        ("My Home Group", 0),
    ]
    assert body["pagination"]["totalCount"] == 2

    filtered = await client.get("/api/builders", params={"search": "home"})
    assert [b["name"] for b in filtered.json()["builders"]] == ["My Home Group"]


@pytest.mark.asyncio
async def test_create_builder_splits_contacts(client, auth, make_user, fetch):
    auth.login(await make_user())
    resp = await client.post(
        "/api/builders/create",
        json={"name": "  Prestige Group ", "emails": "sales@prestige.in, info@prestige.in", "phones": ["080 1234"]},
    )
    assert resp.status_code == 201
    builder = resp.json()["builder"]
    assert builder["name"] == "Prestige Group"
    assert builder["emails"] == ["sales@prestige.in", "info@prestige.in"]
    assert builder["phones"] == ["080 1234"]
    assert builder["description"] == ""

    stored = await fetch(Builder, builder["id"])
    assert stored.website is None


@pytest.mark.asyncio
async def test_create_builder_duplicate_name_is_case_insensitive(client, auth, make_user, make_builder):
    await make_builder("Prestige Group")
    auth.login(await make_user())
    resp = await client.post("/api/builders/create", json={"name": "prestige group"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "A builder with this name already exists"}


@pytest.mark.asyncio
async def test_create_builder_requires_name(client, auth, make_user):
    auth.login(await make_user())
    resp = await client.post("/api/builders/create", json={"name": " "})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Builder name is required"}


@pytest.mark.asyncio
async def test_list_projects_hides_archived_and_searches(client, make_builder, make_project, make_location):
    aparna = await make_builder("Aparna Constructions")
    vizag = await make_location(city="Visakhapatnam", state="Andhra Pradesh")
    await make_project("Sarovar Zenith", builder=aparna)
    await make_project("Beach Heights", location=vizag)
    await make_project("Old Tower", builder=aparna, is_archived=True)

    resp = await client.get("/api/projects")
    assert [p["name"] for p in resp.json()["projects"]] == ["Beach Heights", "Sarovar Zenith"]

    by_builder = await client.get("/api/projects", params={"search": "aparna"})
    assert [p["name"] for p in by_builder.json()["projects"]] == ["Sarovar Zenith"]

    by_city = await client.get("/api/projects", params={"search": "visakha"})
    project = by_city.json()["projects"][0]
    assert project["name"] == "Beach Heights"
    assert project["location"]["state"] == "Andhra Pradesh"


@pytest.mark.asyncio
async def test_project_typeahead(client, make_builder, make_project):
    builder = await make_builder("Aparna Constructions")
    await make_project("Sarovar Zenith", builder=builder)
    await make_project("Cyber Life", builder=builder)

    short = await client.get("/api/projects/search", params={"query": "s"})
    assert [p["name"] for p in short.json()["projects"]] == ["Cyber Life", "Sarovar Zenith"]

    match = await client.get("/api/projects/search", params={"query": "zen"})
    projects = match.json()["projects"]
    assert [p["name"] for p in projects] == ["Sarovar Zenith"]
    assert projects[0]["builder"] == {"name": "Aparna Constructions"}


@pytest.mark.asyncio
async def test_create_project(client, auth, make_user, make_builder, geocode_to, fetch):
    user = await make_user()
    builder = await make_builder()
    auth.login(user)
    geocode_to()

    resp = await client.post(
        "/api/projects/create",
        json={
            "name": "Sarovar Zenith",
            "description": "Gated community",
            "builderId": builder.id,
            "locationAddress": "Gachibowli, Hyderabad",
            "imageUrls": ["https://img.example/1.jpg"],
            "amenities": ["Pool"],
        },
    )
    assert resp.status_code == 201
    project = resp.json()["project"]
    assert project["builder"] == {"id": builder.id, "name": builder.name}
    assert project["type"] == "RESIDENTIAL"
    assert project["thumbnailUrl"] == "https://img.example/1.jpg"
    assert project["location"]["city"] == "Hyderabad"
    assert project["postedByUserId"] == user.id

    stored = await fetch(Project, project["id"])
    assert stored.is_archived is False


@pytest.mark.asyncio
async def test_create_project_rejects_unknown_builder(client, auth, make_user):
    auth.login(await make_user())
    resp = await client.post(
        "/api/projects/create",
        json={"name": "X", "description": "Y", "builderId": "nope", "locationAddress": "Somewhere"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid builder ID"}


@pytest.mark.asyncio
async def test_create_project_needs_geocodable_address(client, auth, make_user, make_builder):
    builder = await make_builder()
    auth.login(await make_user())
    resp = await client.post(
        "/api/projects/create",
        json={"name": "X", "description": "Y", "builderId": builder.id, "locationAddress": "Nowhere"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Could not geocode the provided address"}


@pytest.mark.asyncio
async def test_archive_project(client, auth, make_user, make_project, fetch):
    owner = await make_user()
    project = await make_project(posted_by_user_id=owner.id)
    auth.login(owner)

    resp = await client.patch(f"/api/projects/{project.id}/archive", json={"isArchived": True})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Project archived successfully"
    assert (await fetch(Project, project.id)).is_archived is True

    resp = await client.patch(f"/api/projects/{project.id}/archive", json={"isArchived": False})
    assert resp.json()["project"]["isArchived"] is False


@pytest.mark.asyncio
async def test_archive_project_checks(client, auth, make_user, make_project):
    project = await make_project(posted_by_user_id=(await make_user()).id)
    auth.login(await make_user())

    not_bool = await client.patch(f"/api/projects/{project.id}/archive", json={"isArchived": "true"})
    assert not_bool.status_code == 400
    assert not_bool.json() == {"message": "isArchived must be a boolean"}

    forbidden = await client.patch(f"/api/projects/{project.id}/archive", json={"isArchived": True})
    assert forbidden.status_code == 403

    missing = await client.patch(
        "/api/projects/2f1d3c5e-2c1b-4b8e-9d4a-0a1b2c3d4e5f/archive", json={"isArchived": True}
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_search_wildcards_match_literally(client, make_builder, make_project):
    builder = await make_builder("Aparna Constructions")
    await make_project("Sarovar Zenith", builder=builder)

    for params in ({"search": "%"}, {"search": "_"}):
        assert (await client.get("/api/projects", params=params)).json()["projects"] == []
        assert (await client.get("/api/builders", params=params)).json()["builders"] == []

    typeahead = await client.get("/api/projects/search", params={"query": "%%"})
    assert typeahead.json()["projects"] == []


def project_form(builder, **overrides):
    body = {
        "name": "Sarovar Zenith Phase 2",
        "description": "Second phase towers",
        "builderId": builder.id,
        "locationAddress": "Nanakramguda, Hyderabad",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_update_project_regeocodes_changed_address(client, auth, make_user, make_builder, make_project,
                                                         geocode_to, fetch):
    owner = await make_user()
    project = await make_project(posted_by_user_id=owner.id)
    other_builder = await make_builder("My Home Group")
    auth.login(owner)
    geocode_to(latitude=17.4190, longitude=78.3400, locality="Nanakramguda",
               formatted_address="Nanakramguda, Hyderabad, Telangana 500032, India")

    resp = await client.put(f"/api/projects/{project.id}", json=project_form(other_builder, type="mixed"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Project updated successfully"
    assert body["project"]["name"] == "Sarovar Zenith Phase 2"
    assert body["project"]["type"] == "MIXED"
    assert body["project"]["builder"]["name"] == "My Home Group"
    assert body["project"]["location"]["locality"] == "Nanakramguda"

    stored = await fetch(Project, project.id)
    assert stored.location_id != project.location_id


@pytest.mark.asyncio
async def test_update_project_keeps_location_when_address_unchanged(client, auth, make_user, make_builder,
                                                                    make_project, make_location, monkeypatch,
                                                                    fetch):
    owner = await make_user()
    location = await make_location(formatted_address="Gachibowli, Hyderabad, Telangana 500032, India")
    project = await make_project(location=location, posted_by_user_id=owner.id)
    auth.login(owner)

    async def unexpected_geocode(address, client=None):
        raise AssertionError("address was not changed")
    monkeypatch.setattr("propertyhub.services.geocoding.geocode_address", unexpected_geocode)

    resp = await client.put(
        f"/api/projects/{project.id}",
        json=project_form(await make_builder(), locationAddress="Gachibowli, Hyderabad, Telangana 500032, India"),
    )
    assert resp.status_code == 200
    assert (await fetch(Project, project.id)).location_id == location.id


@pytest.mark.asyncio
async def test_update_project_ungeocodable_address_keeps_location(client, auth, make_user, make_builder,
                                                                  make_project, fetch):
    owner = await make_user()
    project = await make_project(posted_by_user_id=owner.id)
    auth.login(owner)

    resp = await client.put(f"/api/projects/{project.id}", json=project_form(await make_builder()))
    assert resp.status_code == 200
    assert (await fetch(Project, project.id)).location_id == project.location_id


@pytest.mark.asyncio
async def test_update_project_checks(client, auth, make_user, make_builder, make_project):
    owner = await make_user()
    project = await make_project(posted_by_user_id=owner.id)
    builder = await make_builder()

    auth.login(await make_user())
    forbidden = await client.put(f"/api/projects/{project.id}", json=project_form(builder))
    assert forbidden.status_code == 403
    assert forbidden.json() == {"message": "You do not have permission to edit this project"}

    auth.login(owner)
    missing = await client.put(f"/api/projects/{project.id}", json=project_form(builder, name=" "))
    assert missing.json() == {"message": "Missing required fields"}

    unknown_builder = await client.put(f"/api/projects/{project.id}", json=project_form(builder, builderId="nope"))
    assert unknown_builder.status_code == 400
    assert unknown_builder.json() == {"message": "Invalid builder ID"}

    not_found = await client.put(
        "/api/projects/2f1d3c5e-2c1b-4b8e-9d4a-0a1b2c3d4e5f", json=project_form(builder)
    )
    assert not_found.status_code == 404


@pytest.mark.asyncio
async def test_delete_project_detaches_listings(client, db, auth, make_user, make_project, make_property, fetch):
    owner = await make_user()
    project = await make_project(posted_by_user_id=owner.id)
    listing = await make_property(owner, project_id=project.id, builder_id=project.builder_id)
    db.add(Interest(user_id=owner.id, project_id=project.id))
    await db.commit()
    auth.login(owner)

    resp = await client.delete(f"/api/projects/{project.id}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Project deleted successfully"
    assert resp.json()["project"]["id"] == project.id

    assert await fetch(Project, project.id) is None
    stored = await fetch(Property, listing.id)
    assert stored.project_id is None
    assert stored.builder_id == project.builder_id

    again = await client.delete(f"/api/projects/{project.id}")
    assert again.status_code == 404
    assert again.json() == {"message": "Project not found"}


@pytest.mark.asyncio
async def test_delete_project_needs_owner(client, auth, make_user, make_project, fetch):
    project = await make_project(posted_by_user_id=(await make_user()).id)
    auth.login(await make_user())

    resp = await client.delete(f"/api/projects/{project.id}")
    assert resp.status_code == 403
    assert resp.json() == {"message": "You do not have permission to delete this project"}
    assert await fetch(Project, project.id) is not None


@pytest.mark.asyncio
async def test_project_properties_lists_active_newest_first(client, make_user, make_project, make_property):
    owner = await make_user()
    project = await make_project()
    await make_property(owner, project_id=project.id, title="Tower A 1204",
                        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
    await make_property(owner, project_id=project.id, title="Tower B 803",
                        created_at=datetime(2026, 2, 1, tzinfo=timezone.utc))
    await make_property(owner, project_id=project.id, title="Sold flat", listing_status=ListingStatus.SOLD)
    await make_property(owner, title="Elsewhere")

    resp = await client.get(f"/api/projects/{project.id}/properties")
    assert resp.status_code == 200
    body = resp.json()
    assert [p["title"] for p in body["properties"]] == ["Tower B 803", "Tower A 1204"]
    assert body["totalProperties"] == 2

    missing = await client.get("/api/projects/2f1d3c5e-2c1b-4b8e-9d4a-0a1b2c3d4e5f/properties")
    assert missing.status_code == 404
    assert missing.json() == {"message": "Project not found"}
