"""Tests for the YAML college catalogue loader."""

from __future__ import annotations

import textwrap

import pytest

from compass.core.storage.loader import CatalogError, load_college_catalog, seed_repository

from conftest import CATALOG_PATH


def _write(tmp_path, body: str):
    path = tmp_path / "colleges.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


class TestLoadCatalog:
    def test_bundled_catalogue_parses(self):
        colleges = load_college_catalog(CATALOG_PATH)
        assert len(colleges) > 20
        assert all(college.cutoffs for college in colleges)

    def test_ranks_expand_per_category(self, tmp_path):
        path = _write(tmp_path, """
            year: 2024
            colleges:
              - name: Example College
                type: STATE
                city: Hyderabad
                state: Telangana
                fees: 100000
                cutoffs:
                  - exam: TS EAMCET
                    branch: Computer Science and Engineering
                    ranks: {General: 3000, OBC: 4500}
        """)
        [college] = load_college_catalog(path)
        assert college.annual_fees == 100000
        assert {(c.category, c.closing_rank) for c in college.cutoffs} == {
            ("General", 3000),
            ("OBC", 4500),
        }
        assert {c.year for c in college.cutoffs} == {2024}

    def test_cutoff_year_overrides_default(self, tmp_path):
        path = _write(tmp_path, """
            year: 2024
            colleges:
              - name: Example College
                type: STATE
                city: Hyderabad
                state: Telangana
                cutoffs:
                  - exam: TS EAMCET
                    branch: Civil Engineering
                    year: 2023
                    ranks: {General: 20000}
        """)
        [college] = load_college_catalog(path)
        assert college.cutoffs[0].year == 2023

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="does not exist"):
            load_college_catalog(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "colleges: [unclosed\n")
        with pytest.raises(CatalogError, match="Invalid YAML"):
            load_college_catalog(path)

    def test_missing_required_key(self, tmp_path):
        path = _write(tmp_path, """
            colleges:
              - name: Nowhere College
                type: STATE
                state: Telangana
        """)
        with pytest.raises(CatalogError, match="missing city"):
            load_college_catalog(path)

    def test_empty_file(self, tmp_path):
        path = _write(tmp_path, "")
        assert load_college_catalog(path) == []


class TestSeedRepository:
    def test_seeds_empty_store(self, empty_repository):
        count = seed_repository(empty_repository, CATALOG_PATH)
        assert count == empty_repository.count_colleges()
        assert count == len(load_college_catalog(CATALOG_PATH))

    def test_skips_populated_store(self, college_repository):
        before = college_repository.count_colleges()
        assert seed_repository(college_repository, CATALOG_PATH) == before
        assert college_repository.count_colleges() == before
