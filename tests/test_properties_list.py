from datetime import datetime, timedelta, timezone

import pytest

from propertyhub.models import ListingStatus, ListingType, PropertyType

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
async def listings(make_user, make_location, make_property):
    owner = await make_user(company_name="Skyline Realty")
    madhapur = await make_location(locality="Madhapur", zipcode="500081")
    vizag = await make_location(city="Visakhapatnam", state="Andhra Pradesh", locality="MVP Colony", zipcode="530017")
    props = {
        "cheap": await make_property(owner, madhapur, title="Cheap", price=3000000, bedrooms=2,
                                     created_at=BASE_TIME),
        "pricey": await make_property(owner, madhapur, title="Pricey", price=9000000, bedrooms=3,
                                      property_type=PropertyType.VILLA, created_at=BASE_TIME + timedelta(days=1)),
        "unpriced": await make_property(owner, vizag, title="Unpriced", price=None, bedrooms=3,
                                        listing_type=ListingType.RENT, created_at=BASE_TIME + timedelta(days=2)),
        "archived": await make_property(owner, madhapur, title="Archived", price=5000000,
                                        listing_status=ListingStatus.ARCHIVED, created_at=BASE_TIME + timedelta(days=3)),
        "land": await make_property(owner, vizag, title="Plot", price=2000000, property_type=PropertyType.LAND,
                                    created_at=BASE_TIME + timedelta(days=4)),
    }
    return props


def titles(resp):
    return [p["title"] for p in resp.json()["properties"]]


@pytest.mark.asyncio
async def test_list_defaults_to_newest_active(client, listings):
    resp = await client.get("/api/properties/list")
    assert resp.status_code == 200
    assert titles(resp) == ["Plot", "Unpriced", "Pricey", "Cheap"]
    assert resp.json()["pagination"] == {
        "currentPage": 1,
        "totalPages": 1,
        "totalCount": 4,
        "hasNextPage": False,
        "hasPrevPage": False,
    }


@pytest.mark.asyncio
async def test_list_card_shape(client, listings):
    resp = await client.get("/api/properties/list", params={"sortBy": "oldest", "limit": "1"})
    card = resp.json()["properties"][0]
    assert card["title"] == "Cheap"
    assert card["companyName"] == "Skyline Realty"
    assert card["propertyType"] == "APARTMENT"
    assert card["listingStatus"] == "ACTIVE"
    assert card["location"]["locality"] == "Madhapur"
    assert card["location"]["fullAddress"] == "Plot 12, Road No. 3, Madhapur, Hyderabad, Telangana - 500081"
    assert card["builder"] is None
    assert card["imageUrls"] == []
    assert card["details"]["bedrooms"] == 2
    assert "plotSize" not in card["details"]


@pytest.mark.asyncio
async def test_price_sort_treats_missing_price_as_zero(client, listings):
    asc = await client.get("/api/properties/list", params={"sortBy": "price_asc"})
    assert titles(asc) == ["Unpriced", "Plot", "Cheap", "Pricey"]
    desc = await client.get("/api/properties/list", params={"sortBy": "price_desc"})
    assert titles(desc) == ["Pricey", "Cheap", "Plot", "Unpriced"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, expected",
    [
        ({"propertyType": "VILLA"}, ["Pricey"]),
        ({"propertyType": "land_residential"}, ["Plot"]),
        ({"propertyType": "CASTLE"}, []),
        ({"listingType": "RENT"}, ["Unpriced"]),
        ({"location": "mvp"}, ["Plot", "Unpriced"]),
        ({"zipcode": "5000"}, ["Pricey", "Cheap"]),
        ({"bedrooms": "3"}, ["Unpriced", "Pricey"]),
        ({"bedrooms": "two"}, []),
        ({"location": "_"}, []),
        ({"location": "%"}, []),
        ({"zipcode": "%"}, []),
        ({"zipcode": "5_0"}, []),
    ],
)
async def test_list_filters(client, listings, params, expected):
    resp = await client.get("/api/properties/list", params=params)
    assert resp.status_code == 200
    assert titles(resp) == expected


@pytest.mark.asyncio
async def test_list_pagination(client, listings):
    resp = await client.get("/api/properties/list", params={"page": "2", "limit": "3"})
    assert titles(resp) == ["Cheap"]
    assert resp.json()["pagination"] == {
        "currentPage": 2,
        "totalPages": 2,
        "totalCount": 4,
        "hasNextPage": False,
        "hasPrevPage": True,
    }


@pytest.mark.asyncio
async def test_list_junk_paging_falls_back_to_defaults(client, listings):
    resp = await client.get("/api/properties/list", params={"page": "abc", "limit": "-4"})
    pagination = resp.json()["pagination"]
    assert pagination["currentPage"] == 1
    assert pagination["totalCount"] == 4


@pytest.mark.asyncio
async def test_search_by_city_and_price(client, listings):
    resp = await client.get("/api/properties/search", params={"city": "hyderabad", "minPrice": "4000000"})
    assert resp.status_code == 200
    assert titles(resp) == ["Pricey"]
    assert resp.json()["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1, "hasMore": False}


@pytest.mark.asyncio
async def test_search_minimum_bedrooms(client, listings):
    resp = await client.get("/api/properties/search", params={"bedrooms": "3"})
    assert titles(resp) == ["Unpriced", "Pricey"]


@pytest.mark.asyncio
async def test_search_limit_is_capped(client, listings):
    resp = await client.get("/api/properties/search", params={"limit": "500"})
    assert resp.json()["pagination"]["limit"] == 50
