"""Nutrition records from the ``food_items`` table.

Column selection
----------------
Callers may request a subset of columns.  Only names in ``ALLOWED_FIELDS``
ever reach SQL; anything else is silently dropped, and an empty selection
means "all columns".  ``food_name`` is returned under the key ``name``.

Caching
-------
Read queries are cached for a short TTL (5 minutes by default), keyed on the
normalised query parameters.  Deleting a row clears the whole cache, since a
deletion can shift every page of every listing.
"""

import logging
import math
import time
from typing import Any, Callable

from app import database
from app.errors import InvalidQueryError

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
DEFAULT_SEARCH_LIMIT = 10

ALLOWED_FIELDS: tuple[str, ...] = (
    "id", "food_name", "energy_kcal", "energy_kj", "carbohydrate_g", "protein_g",
    "total_fat_g", "dietary_fiber_g", "total_sugars_g", "free_sugars_g", "water_g",
    "sfa_g", "mufa_g", "pufa_g", "cholesterol_mg", "vit_a_mcug_ug", "retinol_mcug",
    "lutein_zeaxanthin_mcug", "carotene_alpha_mcug", "carotene_beta_mcug", "carotenoids_ug",
    "vit_d_mcug", "vit_d2_mcug", "vit_d3_mcug", "vit_k_mcug", "vit_k1_mcug", "vit_k2_mcug",
    "vit_e_mg", "vit_e_added_mg", "vit_c_mg", "thiamin_mg", "riboflavin_mg", "niacin_mg",
    "vit_b6_mg", "vit_b5_mg", "vit_b7_mcug", "folate_dfe_mcug", "folate_food_mcug",
    "folate_total_mcug", "folic_acid_mcug", "vit_b12_mcug", "vit_b12_added_mcug",
    "choline_mg", "calcium_mg", "phosphorus_mg", "magnesium_mg", "sodium_mg",
    "potassium_mg", "iron_mg", "zinc_mg", "copper_mg", "selenium_mcug",
    "chromium_mg", "manganese_mg", "molybdenum_mg", "theobromine_mg",
    "lycopene_mcug", "cryptoxanthin_beta_mcug", "alcohol_g", "caffeine_mg",
)
_ALLOWED = frozenset(ALLOWED_FIELDS)


# ── request parsing ──────────────────────────────────────────────────────────


def parse_fields(raw: str | None) -> list[str] | None:
    """Split a comma-separated ``fields`` parameter."""
    if not raw:
        return None
    return [f.strip() for f in raw.split(",") if f.strip()]


def parse_pagination(
    raw_limit: str | None, raw_offset: str | None, default_limit: int
) -> tuple[int, int]:
    """Return (limit, offset), falling back to defaults on bad input."""
    try:
        limit = int(raw_limit) if raw_limit is not None else default_limit
    except ValueError:
        limit = default_limit
    try:
        offset = int(raw_offset) if raw_offset is not None else 0
    except ValueError:
        offset = 0
    if limit <= 0:
        limit = default_limit
    if offset < 0:
        offset = 0
    return limit, offset


def validate_fields(selected: list[str] | None) -> list[str]:
    """Keep only allow-listed column names, preserving request order."""
    if not selected:
        return []
    return [f for f in dict.fromkeys(selected) if f in _ALLOWED]


def format_columns(selected: list[str]) -> str:
    if not selected:
        return "*"
    return ", ".join(
        '"food_name" AS "name"' if column == "food_name" else f'"{column}"'
        for column in selected
    )


# ── service ──────────────────────────────────────────────────────────────────


class FoodService:
    def __init__(
        self, ttl_seconds: float = 300, *, clock: Callable[[], float] = time.time
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[tuple, tuple[float, Any]] = {}

    # ── cache ────────────────────────────────────────────────────────────

    def _cached(self, key: tuple) -> Any | None:
        hit = self._cache.get(key)
        if hit is None:
            return None
        stored_at, value = hit
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._cache[key]
            return None
        return value

    def _store(self, key: tuple, value: Any) -> None:
        now = self._clock()
        # insertion order is age order, so expired entries sit at the front
        self._cache.pop(key, None)
        while self._cache:
            oldest = next(iter(self._cache))
            if now - self._cache[oldest][0] < self.ttl_seconds:
                break
            del self._cache[oldest]
        self._cache[key] = (now, value)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ── queries ──────────────────────────────────────────────────────────

    def _query(self, sql: str, params: tuple) -> list[dict]:
        conn = database.get_db()
        try:
            return [dict(row) for row in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def list_foods(
        self,
        fields: list[str] | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[dict]:
        """All food items ordered by name, one page at a time."""
        columns = format_columns(validate_fields(fields))
        key = ("list", columns, limit, offset)
        cached = self._cached(key)
        if cached is not None:
            return cached

        rows = self._query(
            f"""
            SELECT {columns}
            FROM {database.FOODS_TABLE}
            ORDER BY food_name ASC
            LIMIT ? OFFSET ?
            """,
            (limit, offset),
        )
        self._store(key, rows)
        return rows

    def search_foods(
        self,
        query: str,
        fields: list[str] | None = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
        offset: int = 0,
    ) -> list[dict]:
        """Food items whose name contains *query* (case-insensitive)."""
        columns = format_columns(validate_fields(fields))
        key = ("search", query, columns, limit, offset)
        cached = self._cached(key)
        if cached is not None:
            return cached

        rows = self._query(
            f"""
            SELECT {columns}
            FROM {database.FOODS_TABLE}
            WHERE food_name LIKE ?
            ORDER BY food_name ASC
            LIMIT ? OFFSET ?
            """,
            (f"%{query}%", limit, offset),
        )
        self._store(key, rows)
        return rows

    def delete_food(self, food_id: int) -> dict | None:
        """Delete one food item; return it, or None when it did not exist."""
        conn = database.get_db()
        try:
            row = conn.execute(
                f"SELECT * FROM {database.FOODS_TABLE} WHERE id = ?", (food_id,)
            ).fetchone()
            if row is None:
                return None
            conn.execute(f"DELETE FROM {database.FOODS_TABLE} WHERE id = ?", (food_id,))
            conn.commit()
        finally:
            conn.close()
        self.clear_cache()
        logger.info("Deleted food item %d", food_id)
        return dict(row)

    def get_nutrients(self, food_id: int, nutrients: list[str]) -> dict[str, float] | None:
        """Return the requested nutrient values for one food item.

        Raises
        ------
        InvalidQueryError – none of *nutrients* is a known column.
        """
        valid = validate_fields([n.strip() for n in nutrients])
        if not valid:
            raise InvalidQueryError("No valid nutrients provided.")

        key = ("nutrients", food_id, tuple(valid))
        cached = self._cached(key)
        if cached is not None:
            return cached

        columns = ", ".join(f'"{n}"' for n in valid)
        rows = self._query(
            f"SELECT {columns} FROM {database.FOODS_TABLE} WHERE id = ? LIMIT 1",
            (food_id,),
        )
        if not rows:
            return None

        data: dict[str, float] = {}
        for nutrient in valid:
            try:
                value = float(rows[0][nutrient])
            except (TypeError, ValueError):
                value = math.nan
            data[nutrient] = 0 if math.isnan(value) else value
        self._store(key, data)
        return data
