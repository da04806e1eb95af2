"""Tests for CollegeRepository: queries over in-memory SQLite."""

from __future__ import annotations

import pytest

from compass.core.storage.models import College, Cutoff
from compass.core.storage.repository import RepositoryError


def _make_college(**overrides) -> College:
    defaults = dict(
        name="Test Institute of Technology",
        acronym="TIT",
        institution_type="STATE",
        city="Hyderabad",
        state="Telangana",
        nirf_rank=120,
        annual_fees=90000,
        cutoffs=[
            Cutoff("TS EAMCET", "Computer Science and Engineering", "General", 4000, 2023),
            Cutoff("TS EAMCET", "Computer Science and Engineering", "General", 3500, 2024),
            Cutoff("TS EAMCET", "Computer Science and Engineering", "OBC", 5200, 2024),
        ],
    )
    defaults.update(overrides)
    return College(**defaults)


class TestSave:
    def test_save_assigns_id(self, empty_repository):
        college = _make_college()
        college_id = empty_repository.save_college(college)
        assert college.id == college_id
        assert empty_repository.count_colleges() == 1

    def test_duplicate_name_raises(self, empty_repository):
        empty_repository.save_college(_make_college())
        with pytest.raises(RepositoryError, match="Could not save"):
            empty_repository.save_college(_make_college())

    def test_roundtrip_includes_cutoffs(self, empty_repository):
        college_id = empty_repository.save_college(_make_college())
        loaded = empty_repository.get_college(college_id)
        assert loaded.name == "Test Institute of Technology"
        assert loaded.location == "Hyderabad, Telangana"
        assert len(loaded.cutoffs) == 3
        # Newest year first
        assert loaded.cutoffs[0].year == 2024

    def test_get_missing_college(self, empty_repository):
        assert empty_repository.get_college(999) is None


class TestFindCollege:
    def test_exact_name(self, college_repository):
        college = college_repository.find_college("National Institute of Technology Warangal")
        assert college.acronym == "NIT Warangal"

    def test_acronym_case_insensitive(self, college_repository):
        assert college_repository.find_college("cbit").name == (
            "Chaitanya Bharathi Institute of Technology"
        )

    def test_substring_prefers_better_nirf_rank(self, college_repository):
        college = college_repository.find_college("Indian Institute of Technology")
        assert college.acronym == "IIT Madras"

    def test_not_found(self, college_repository):
        assert college_repository.find_college("Hogwarts") is None
        assert college_repository.find_college("   ") is None


class TestListColleges:
    def test_filter_by_type_and_state(self, college_repository):
        colleges = college_repository.list_colleges(institution_types=["IIT"], state="telangana")
        assert [c.acronym for c in colleges] == ["IIT Hyderabad"]

    def test_filter_by_fees(self, college_repository):
        colleges = college_repository.list_colleges(max_fees=5000)
        assert {c.acronym for c in colleges} == {"AIIMS Delhi", "MAMC", "JU"}

    def test_ordered_by_nirf_rank(self, college_repository):
        colleges = college_repository.list_colleges(institution_types=["IIT"])
        ranks = [c.nirf_rank for c in colleges]
        assert ranks == sorted(ranks)


class TestCutoffs:
    def test_get_cutoffs_filters(self, college_repository):
        college = college_repository.find_college("JNTUH CEH")
        cutoffs = college_repository.get_cutoffs(
            college.id, exam="TS EAMCET", category="obc", branch="computer"
        )
        assert len(cutoffs) == 1
        assert cutoffs[0].closing_rank == 2100

    def test_find_cutoffs_by_exam_and_city(self, college_repository):
        rows = college_repository.find_cutoffs("TS EAMCET", city="Hyderabad")
        assert rows
        assert all(college.city == "Hyderabad" for college, _ in rows)
        assert all(cutoff.exam == "TS EAMCET" for _, cutoff in rows)
        assert "KITS Warangal" not in {college.acronym for college, _ in rows}

    def test_find_cutoffs_shares_college_instances(self, college_repository):
        rows = college_repository.find_cutoffs("BITSAT", state="Telangana")
        colleges = {id(college) for college, _ in rows}
        assert len(rows) == 2
        assert len(colleges) == 1
