"""Tests for the ordered role keyword table."""

import pytest

from careerrag.roles import ROLE_KEYWORDS, ROLE_TABLE_VERSION, classify_role


class TestClassifyRole:
    """Test suite for classify_role."""

    def test_table_order_is_pinned(self) -> None:
        # Changing the order changes results for overlapping descriptions;
        # update ROLE_TABLE_VERSION and this test together.
        assert ROLE_TABLE_VERSION == 1
        assert [role for role, _ in ROLE_KEYWORDS][:3] == [
            "software engineer",
            "data scientist",
            "devops engineer",
        ]

    def test_first_listed_role_wins_on_overlap(self) -> None:
        result = classify_role("Senior Software Engineer with data science experience")
        assert result == "software engineer"

    def test_match_is_case_insensitive(self) -> None:
        assert classify_role("DATA SCIENTIST - NLP team") == "data scientist"

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Backend Engineer (Go, Postgres)", "software engineer"),
            ("Machine Learning researcher", "data scientist"),
            ("Site Reliability Engineer on call rotation", "devops engineer"),
            ("Senior Product Manager, payments", "product manager"),
            ("Account Executive, EMEA", "sales"),
        ],
    )
    def test_known_roles(self, description: str, expected: str) -> None:
        assert classify_role(description) == expected

    def test_no_match_returns_none(self) -> None:
        assert classify_role("Head chef for a busy restaurant") is None

    def test_empty_description_returns_none(self) -> None:
        assert classify_role("") is None
