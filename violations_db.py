"""
Violation Database Module
Persists per-actor, per-check violation counters in SQLite so punishment
intervals survive restarts.
"""
import sqlite3
import logging
from datetime import datetime, UTC
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DB_PATH = "violations.db"


def get_db_connection():
    """Get a database connection with WAL mode and concurrent access optimizations."""
    conn = sqlite3.connect(DB_PATH)
    # Enable WAL mode for concurrent reads/writes
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA busy_timeout=5000")  # 5 second timeout for locked DB
    return conn


def init_db() -> None:
    """Create the counters table if it does not exist."""
    conn = get_db_connection()
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS violations (
                actor_id TEXT NOT NULL,
                check_name TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT,
                PRIMARY KEY (actor_id, check_name)
            )
        """)
        conn.commit()
    finally:
        conn.close()
    logger.info(f"Violation database ready at {DB_PATH}")


def load_counters() -> Dict[Tuple[str, str], int]:
    """
    Load every stored counter.

    Returns:
        Mapping of (actor_id, check_name) to the stored count.

    Raises:
        sqlite3.Error: if the database cannot be read. The caller decides
        whether to continue with in-memory counters.
    """
    conn = get_db_connection()
    try:
        rows = conn.execute("SELECT actor_id, check_name, count FROM violations").fetchall()
    finally:
        conn.close()
    return {(row[0], row[1]): int(row[2]) for row in rows}


def save_counter(actor_id: str, check_name: str, count: int) -> None:
    """Upsert a counter."""
    conn = get_db_connection()
    try:
        conn.execute("""
            INSERT INTO violations (actor_id, check_name, count, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(actor_id, check_name) DO UPDATE SET
                count = excluded.count,
                updated_at = excluded.updated_at
        """, (actor_id, check_name, count, datetime.now(UTC).isoformat()))
        conn.commit()
    finally:
        conn.close()


def reset_counters(actor_id: str, check_name: Optional[str] = None) -> int:
    """
    Administrative reset of an actor's counters.

    Args:
        actor_id: Actor whose counters are cleared
        check_name: Only clear this check's counter when given

    Returns:
        int: Number of rows removed
    """
    conn = get_db_connection()
    try:
        if check_name is None:
            cur = conn.execute("DELETE FROM violations WHERE actor_id = ?", (actor_id,))
        else:
            cur = conn.execute(
                "DELETE FROM violations WHERE actor_id = ? AND check_name = ?",
                (actor_id, check_name),
            )
        conn.commit()
        removed = cur.rowcount
    finally:
        conn.close()
    logger.info(f"Reset {removed} violation counters for {actor_id}")
    return removed
