"""College repository: read-only queries over the college store.

Tool executors never touch SQL directly; they go through this repository so
that every fact they return comes from the seeded catalogue.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from compass.core.storage.database import CollegeDatabase
from compass.core.storage.models import College, Cutoff

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class CollegeRepository:
    """Query layer for colleges and cutoffs.

    Usage::

        db = CollegeDatabase(":memory:")
        db.initialize()
        repo = CollegeRepository(db)
        repo.save_college(college)
        rows = repo.find_cutoffs("TS EAMCET", city="Hyderabad")
    """

    def __init__(self, database: CollegeDatabase) -> None:
        self._db = database

    @property
    def database(self) -> CollegeDatabase:
        return self._db

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def save_college(self, college: College) -> int:
        """Insert a college and its cutoffs. Returns the new row id."""
        conn = self._db.connection
        try:
            cursor = conn.execute(
                """INSERT INTO colleges
                   (name, acronym, institution_type, city, state,
                    nirf_rank, annual_fees, website)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    college.name,
                    college.acronym,
                    college.institution_type,
                    college.city,
                    college.state,
                    college.nirf_rank,
                    college.annual_fees,
                    college.website,
                ),
            )
            college_id = cursor.lastrowid
            conn.executemany(
                """INSERT INTO cutoffs
                   (college_id, exam, branch, category, closing_rank, year)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [
                    (college_id, c.exam, c.branch, c.category, c.closing_rank, c.year)
                    for c in college.cutoffs
                ],
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise RepositoryError(f"Could not save college {college.name!r}: {exc}") from exc

        college.id = college_id
        return college_id

    def save_colleges(self, colleges: list[College]) -> int:
        for college in colleges:
            self.save_college(college)
        return len(colleges)

    # ------------------------------------------------------------------
    # Colleges
    # ------------------------------------------------------------------

    def count_colleges(self) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM colleges").fetchone()
        return row[0]

    def get_college(self, college_id: int) -> College | None:
        row = self._db.connection.execute(
            "SELECT * FROM colleges WHERE id = ?", (college_id,)
        ).fetchone()
        return self._to_college(row) if row else None

    def find_college(self, name: str) -> College | None:
        """Look a college up by exact name, acronym, then substring."""
        needle = (name or "").strip()
        if not needle:
            return None
        conn = self._db.connection

        row = conn.execute(
            "SELECT * FROM colleges WHERE lower(name) = lower(?)", (needle,)
        ).fetchone()
        if row is None:
            row = conn.execute(
                "SELECT * FROM colleges WHERE lower(acronym) = lower(?)", (needle,)
            ).fetchone()
        if row is None:
            row = conn.execute(
                """SELECT * FROM colleges
                   WHERE lower(name) LIKE '%' || lower(?) || '%'
                   ORDER BY nirf_rank IS NULL, nirf_rank LIMIT 1""",
                (needle,),
            ).fetchone()
        return self._to_college(row) if row else None

    def list_colleges(
        self,
        *,
        institution_types: list[str] | None = None,
        state: str | None = None,
        city: str | None = None,
        max_fees: int | None = None,
    ) -> list[College]:
        """List colleges matching the filters, best NIRF rank first."""
        conditions: list[str] = []
        params: list[Any] = []

        if institution_types:
            conditions.append(
                f"institution_type IN ({', '.join('?' for _ in institution_types)})"
            )
            params.extend(institution_types)
        if state:
            conditions.append("lower(state) = lower(?)")
            params.append(state)
        if city:
            conditions.append("lower(city) = lower(?)")
            params.append(city)
        if max_fees is not None:
            conditions.append("annual_fees IS NOT NULL AND annual_fees <= ?")
            params.append(max_fees)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        rows = self._db.connection.execute(
            f"SELECT * FROM colleges{where} ORDER BY nirf_rank IS NULL, nirf_rank, name",
            params,
        ).fetchall()
        return [self._to_college(row) for row in rows]

    # ------------------------------------------------------------------
    # Cutoffs
    # ------------------------------------------------------------------

    def get_cutoffs(
        self,
        college_id: int,
        *,
        exam: str | None = None,
        category: str | None = None,
        branch: str | None = None,
    ) -> list[Cutoff]:
        conditions = ["college_id = ?"]
        params: list[Any] = [college_id]
        if exam:
            conditions.append("exam = ?")
            params.append(exam)
        if category:
            conditions.append("lower(category) = lower(?)")
            params.append(category)
        if branch:
            conditions.append("lower(branch) LIKE '%' || lower(?) || '%'")
            params.append(branch)

        rows = self._db.connection.execute(
            f"""SELECT * FROM cutoffs WHERE {' AND '.join(conditions)}
                ORDER BY year DESC, branch, category""",
            params,
        ).fetchall()
        return [self._to_cutoff(row) for row in rows]

    def find_cutoffs(
        self,
        exam: str,
        *,
        branch: str | None = None,
        state: str | None = None,
        city: str | None = None,
    ) -> list[tuple[College, Cutoff]]:
        """All cutoff rows for an exam joined with their college, newest year first."""
        conditions = ["c.exam = ?"]
        params: list[Any] = [exam]
        if branch:
            conditions.append("lower(c.branch) LIKE '%' || lower(?) || '%'")
            params.append(branch)
        if state:
            conditions.append("lower(k.state) = lower(?)")
            params.append(state)
        if city:
            conditions.append("lower(k.city) = lower(?)")
            params.append(city)

        rows = self._db.connection.execute(
            f"""SELECT c.exam, c.branch, c.category, c.closing_rank, c.year,
                       k.id AS college_id, k.name, k.acronym, k.institution_type,
                       k.city, k.state, k.nirf_rank, k.annual_fees, k.website
                FROM cutoffs c JOIN colleges k ON k.id = c.college_id
                WHERE {' AND '.join(conditions)}
                ORDER BY c.year DESC, c.closing_rank""",
            params,
        ).fetchall()

        colleges: dict[int, College] = {}
        joined: list[tuple[College, Cutoff]] = []
        for row in rows:
            college = colleges.get(row["college_id"])
            if college is None:
                college = College(
                    id=row["college_id"],
                    name=row["name"],
                    acronym=row["acronym"],
                    institution_type=row["institution_type"],
                    city=row["city"],
                    state=row["state"],
                    nirf_rank=row["nirf_rank"],
                    annual_fees=row["annual_fees"],
                    website=row["website"],
                )
                colleges[college.id] = college
            joined.append((college, self._to_cutoff(row)))
        return joined

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _to_college(self, row: sqlite3.Row) -> College:
        college = College(
            id=row["id"],
            name=row["name"],
            acronym=row["acronym"],
            institution_type=row["institution_type"],
            city=row["city"],
            state=row["state"],
            nirf_rank=row["nirf_rank"],
            annual_fees=row["annual_fees"],
            website=row["website"],
        )
        college.cutoffs = self.get_cutoffs(row["id"])
        return college

    @staticmethod
    def _to_cutoff(row: sqlite3.Row) -> Cutoff:
        return Cutoff(
            exam=row["exam"],
            branch=row["branch"],
            category=row["category"],
            closing_rank=row["closing_rank"],
            year=row["year"],
        )
