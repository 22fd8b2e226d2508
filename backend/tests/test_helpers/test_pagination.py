"""Tests for pagination helpers."""

from helpers.pagination import build_pagination, page_to_offset


class TestPageToOffset:
    """Tests for page_to_offset."""

    def test_first_page_starts_at_zero(self):
        assert page_to_offset(1, 10) == 0

    def test_third_page(self):
        assert page_to_offset(3, 25) == 50


class TestBuildPagination:
    """Tests for the pagination envelope."""

    def test_middle_page(self):
        assert build_pagination(page=2, limit=10, total=35) == {
            "page": 2,
            "limit": 10,
            "total": 35,
            "total_pages": 4,
            "has_next": True,
            "has_prev": True,
        }

    def test_last_page(self):
        result = build_pagination(page=4, limit=10, total=35)
        assert result["has_next"] is False
        assert result["has_prev"] is True

    def test_empty_result(self):
        result = build_pagination(page=1, limit=10, total=0)
        assert result["total_pages"] == 0
        assert result["has_next"] is False
        assert result["has_prev"] is False

    def test_exact_multiple(self):
        assert build_pagination(page=1, limit=5, total=10)["total_pages"] == 2
