"""Report listing: filters, area search, sorting and paging."""

import pytest

from civicworks.core.exceptions import NotFoundError, ValidationError


@pytest.fixture
def city_reports(container, make_report, make_user, clock, neighbor):
    other = make_user("Meera Iyer")
    reports = {
        "pothole": make_report(category="road", description="Deep pothole on MG Road", lat=28.61, lng=77.20,
                               priority="low"),
    }
    clock.advance(hours=1)
    reports["leak"] = make_report(owner=other["id"], category="water", description="Pipe leaking near school",
                                  lat=28.62, lng=77.21, priority="high")
    clock.advance(hours=1)
    reports["garbage"] = make_report(category="garbage", description="Overflowing bin", lat=19.07, lng=72.87,
                                     is_emergency=True)
    container.engagement.toggle_like(reports["leak"]["id"], neighbor["id"])
    container.engagement.record_view(reports["pothole"]["id"])
    container.engagement.record_view(reports["pothole"]["id"])
    return reports


def _ids(result):
    return [r["id"] for r in result["reports"]]


class TestListReports:

    def test_default_is_newest_first(self, container, city_reports):
        result = container.reports.list_reports()

        assert _ids(result) == [city_reports[k]["id"] for k in ("garbage", "leak", "pothole")]
        assert result["total"] == 3
        assert result["pages"] == 1

    def test_equality_filters(self, container, city_reports, owner):
        assert _ids(container.reports.list_reports(category="water")) == [city_reports["leak"]["id"]]
        assert _ids(container.reports.list_reports(is_emergency=True)) == [city_reports["garbage"]["id"]]
        assert _ids(container.reports.list_reports(priority="low")) == [city_reports["pothole"]["id"]]
        assert len(container.reports.list_reports(owner=owner["id"])["reports"]) == 2

    def test_search_is_case_insensitive(self, container, city_reports):
        assert _ids(container.reports.list_reports(search="PIPE")) == [city_reports["leak"]["id"]]
        assert _ids(container.reports.list_reports(search="road")) == [city_reports["pothole"]["id"]]

    def test_bounding_box(self, container, city_reports):
        result = container.reports.list_reports(lat=28.615, lng=77.205, radius_km=5)

        assert set(_ids(result)) == {city_reports["pothole"]["id"], city_reports["leak"]["id"]}

    @pytest.mark.parametrize("sort_by,expected", [
        ("priority", ["garbage", "leak", "pothole"]),
        ("likes", ["leak", "garbage", "pothole"]),
        ("view_count", ["pothole", "garbage", "leak"]),
    ])
    def test_sorting(self, container, city_reports, sort_by, expected):
        result = container.reports.list_reports(sort_by=sort_by)
        assert _ids(result) == [city_reports[k]["id"] for k in expected]

    def test_ascending(self, container, city_reports):
        result = container.reports.list_reports(sort_order="asc")
        assert _ids(result) == [city_reports[k]["id"] for k in ("pothole", "leak", "garbage")]

    def test_paging(self, container, city_reports):
        result = container.reports.list_reports(page=2, limit=2)

        assert _ids(result) == [city_reports["pothole"]["id"]]
        assert result["total"] == 3
        assert result["pages"] == 2

    @pytest.mark.parametrize("kwargs", [
        {"sort_by": "title"},
        {"sort_order": "up"},
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"lat": 28.6},
        {"lat": 28.6, "lng": 77.2, "radius_km": 0},
    ])
    def test_invalid_queries(self, container, kwargs):
        with pytest.raises(ValidationError):
            container.reports.list_reports(**kwargs)


class TestGetReport:

    def test_get_and_my_reports(self, container, city_reports, owner):
        assert container.reports.get_report(city_reports["leak"]["id"])["category"] == "water"
        mine = container.reports.list_my_reports(owner["id"])
        assert [r["id"] for r in mine] == [city_reports["garbage"]["id"], city_reports["pothole"]["id"]]

    def test_unknown_report(self, container):
        with pytest.raises(NotFoundError):
            container.reports.get_report("missing")
