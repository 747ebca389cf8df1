"""SQLite connection helpers for the foods database.

The ``food_items`` table is owned by whoever loads the nutrition data; this
service only reads from it (and deletes rows on request).
"""

import sqlite3

from app import config

FOODS_TABLE = "food_items"


def init_db() -> bool:
    """Open the foods database once at startup and report its state.

    Returns True when the ``food_items`` table is present.
    """
    db_path = config.get().foods_db
    conn = get_db()
    try:
        row = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (FOODS_TABLE,),
        ).fetchone()
    finally:
        conn.close()
    if row is None:
        print(f"  ⚠  {FOODS_TABLE} table missing in {db_path} — food routes will fail")
        return False
    print(f"  ℹ  Foods database ready: {db_path}")
    return True


def get_db() -> sqlite3.Connection:
    """Return a connection to the foods database with Row factory enabled."""
    conn = sqlite3.connect(config.get().foods_db)
    conn.row_factory = sqlite3.Row
    return conn
