import pytest

from propertyhub.services.properties import compute_sq_ft, parse_listing_type, parse_property_type
from propertyhub.models import ListingType, PropertyType
from propertyhub.utils.pagination import page_request, pagination_envelope
from propertyhub.utils.text import blank_to_none, count_label, slugify, split_csv, to_float, to_int


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        (None, None, (1, 12, 0)),
        ("3", "10", (3, 10, 20)),
        ("0", "abc", (1, 12, 0)),
        ("2", "1000", (2, 100, 100)),
    ],
)
def test_page_request(page, limit, expected):
    req = page_request(page, limit, default_limit=12, max_limit=100)
    assert (req.page, req.limit, req.skip) == expected


def test_pagination_envelope_middle_page():
    req = page_request("2", "10", default_limit=12)
    assert pagination_envelope(req, 25) == {
        "currentPage": 2,
        "totalPages": 3,
        "totalCount": 25,
        "hasNextPage": True,
        "hasPrevPage": True,
    }


def test_pagination_envelope_empty():
    assert pagination_envelope(page_request(None, None, 12), 0)["totalPages"] == 0


@pytest.mark.parametrize(
    "title, slug",
    [
        ("Best areas to buy in 2026?", "best-areas-to-buy-in-2026"),
        ("  Rent -- vs -- Buy  ", "rent-vs-buy"),
        ("!!!", ""),
    ],
)
def test_slugify(title, slug):
    assert slugify(title) == slug


def test_text_helpers():
    assert blank_to_none("  ") is None
    assert blank_to_none("x") == "x"
    assert split_csv("a@x.com, , b@x.com") == ["a@x.com", "b@x.com"]
    assert to_int("3.0") == 3
    assert to_int("three") is None
    assert to_int("Infinity") is None
    assert to_float("NaN") is None
    assert to_float("1e400") is None
    assert to_float(True) is None
    assert to_float(" 2.5 ") == 2.5
    assert count_label(1, "reply", "replies") == "1 reply"
    assert count_label(0, "post") == "0 posts"


def test_property_type_parsing():
    assert parse_property_type("condo") == PropertyType.CONDO
    assert parse_property_type("LAND_AGRICULTURE") == PropertyType.LAND
    assert parse_property_type("castle") is None
    assert parse_property_type("") is None
    assert parse_listing_type("rent") == ListingType.RENT
    assert parse_listing_type("lease") is None


@pytest.mark.parametrize(
    "size, unit, expected",
    [
        ("1200", "sq_ft", 1200.0),
        (100, "sq_m", 1076.4),
        ("200", "SQ_YD", 1800.0),
        ("abc", "sq_ft", None),
        ("100", None, None),
    ],
)
def test_compute_sq_ft(size, unit, expected):
    result = compute_sq_ft(size, unit)
    if expected is None:
        assert result is None
    else:
        assert result == pytest.approx(expected)


@pytest.mark.parametrize("page, has_next, has_prev", [("1", True, False), ("3", False, True)])
def test_pagination_envelope_edges(page, has_next, has_prev):
    envelope = pagination_envelope(page_request(page, "10", default_limit=12), 25)
    assert (envelope["hasNextPage"], envelope["hasPrevPage"]) == (has_next, has_prev)
