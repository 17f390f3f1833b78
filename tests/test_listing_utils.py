import pytest

from app.cms.listing import MAX_PAGE, Page, parse_pagination
from app.cms.utils import slugify
from app.cms.validation import MAX_INT, coerce_id, parse_datetime


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Tips for Healthy Aging", "tips-for-healthy-aging"),
        ("  Dr. Smith's -- Q&A!  ", "dr-smith-s-q-a"),
        ("COVID-19 Vaccines 2024", "covid-19-vaccines-2024"),
        ("!!!", ""),
        (None, ""),
    ],
)
def test_slugify(raw, expected):
    assert slugify(raw) == expected


def test_parse_pagination_defaults_and_cap():
    assert parse_pagination({}, 10) == (1, 10)
    assert parse_pagination({"page": "3", "limit": "5"}, 10) == (3, 5)
    assert parse_pagination({"page": "0", "limit": "x"}, 10) == (1, 10)
    assert parse_pagination({"limit": "500"}, 10) == (1, 100)
    assert parse_pagination({"limit": "500"}, 10, max_limit=50) == (1, 50)


def test_page_total_pages():
    assert Page(items=[], total=0, page=1, limit=10).total_pages == 0
    assert Page(items=[], total=21, page=1, limit=10).total_pages == 3
    env = Page(items=[1, 2], total=2, page=1, limit=10).envelope(lambda n: {"n": n})
    assert env == {"items": [{"n": 1}, {"n": 2}], "meta": {"total": 2, "page": 1, "limit": 10, "totalPages": 1}}


def test_parse_datetime_normalizes_to_naive_utc():
    dt = parse_datetime("2024-05-01T12:30:00Z")
    assert dt.tzinfo is None
    assert (dt.hour, dt.minute) == (12, 30)
    assert parse_datetime("2024-05-01T14:30:00+02:00") == dt


def test_huge_page_is_clamped():
    page, limit = parse_pagination({"page": "99999999999999999999"}, 10)
    assert page == MAX_PAGE
    assert limit == 10


@pytest.mark.parametrize(
    "raw,expected",
    [
        (7, 7),
        (" 12 ", 12),
        ("²", None),
        ("١٢", None),
        (0, None),
        (-3, None),
        (MAX_INT, MAX_INT),
        (MAX_INT + 1, None),
        (str(10**20), None),
        (True, None),
        (1.0, None),
    ],
)
def test_coerce_id_bounds(raw, expected):
    assert coerce_id(raw) == expected
