"""
Movie catalog storage: the movies table, freshness lookups and upserts.
Runs on a local SQLite file by default, or on Snowflake when configured.
All statements are fixed text with bound parameters.
"""
import logging
import os
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional
import pandas as pd
from dotenv import load_dotenv
import snowflake.connector

from errors import PersistenceError
from models import MovieRecord, UpsertOutcome, WatchStatus

load_dotenv()

logger = logging.getLogger(__name__)

# Same "?" placeholders on both backends
snowflake.connector.paramstyle = "qmark"

DB_ERRORS = (sqlite3.Error, snowflake.connector.errors.Error)

CREATE_TABLE_SQL = {
    "sqlite": """
        CREATE TABLE IF NOT EXISTS movies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT,
            external_id TEXT UNIQUE,
            release_date TEXT,
            genre TEXT,
            rating TEXT,
            plot TEXT,
            poster TEXT,
            source_url TEXT,
            watch_status TEXT DEFAULT '',
            box_office INTEGER DEFAULT 0,
            runtime_minutes INTEGER DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_DATE,
            updated_at TEXT DEFAULT CURRENT_DATE
        )
    """,
    "snowflake": """
        CREATE TABLE IF NOT EXISTS movies (
            id INTEGER AUTOINCREMENT PRIMARY KEY,
            title VARCHAR,
            external_id VARCHAR UNIQUE,
            release_date DATE,
            genre VARCHAR,
            rating VARCHAR,
            plot VARCHAR,
            poster VARCHAR,
            source_url VARCHAR,
            watch_status VARCHAR DEFAULT '',
            box_office INTEGER DEFAULT 0,
            runtime_minutes INTEGER DEFAULT 0,
            created_at DATE DEFAULT CURRENT_DATE(),
            updated_at DATE DEFAULT CURRENT_DATE()
        )
    """,
}

RELEASE_YEAR_SQL = {
    "sqlite": "strftime('%Y', release_date)",
    "snowflake": "YEAR(release_date)",
}

LAST_UPDATE_SQL = "SELECT MAX(updated_at) FROM movies WHERE title = ?"

FIND_SQL = "SELECT id FROM movies WHERE title = ? AND external_id = ?"

FIND_BY_EXTERNAL_ID_SQL = "SELECT title FROM movies WHERE external_id = ?"

UPDATE_SQL = """
    UPDATE movies
    SET release_date = ?,
        genre = ?,
        rating = ?,
        plot = ?,
        poster = ?,
        source_url = ?,
        box_office = ?,
        runtime_minutes = ?,
        updated_at = ?
    WHERE title = ?
      AND external_id = ?
"""

INSERT_SQL = """
    INSERT INTO movies (title, external_id, release_date, genre, rating, plot, poster,
                        source_url, box_office, runtime_minutes, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

SET_STATUS_SQL = "UPDATE movies SET watch_status = ? WHERE external_id = ?"

GET_SQL = "SELECT * FROM movies WHERE external_id = ?"


def _to_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class MovieStore:
    """Manages the movies table on SQLite or Snowflake"""

    def __init__(self, backend: str = "sqlite", db_path: str = "data/movies.db",
                 clock: Callable[[], date] = date.today):
        if backend not in CREATE_TABLE_SQL:
            raise ValueError(f"Unsupported store backend: {backend}")
        self.backend = backend
        self.db_path = db_path
        self.clock = clock
        self.conn = None
        self.cursor = None

    @classmethod
    def from_settings(cls, settings) -> "MovieStore":
        return cls(backend=settings.db_backend, db_path=settings.db_path)

    # ============ Connection ============

    def connect(self):
        """Open the connection used for the whole run and ensure the table exists"""
        try:
            if self.backend == "snowflake":
                self.conn = self._connect_snowflake()
            else:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self.conn = sqlite3.connect(self.db_path)
            self.cursor = self.conn.cursor()
            logger.info(f"Connected to {self.backend} movie store")
        except DB_ERRORS as e:
            logger.error(f"Failed to connect to {self.backend} store: {str(e)}")
            raise PersistenceError(f"Could not connect to {self.backend} store") from e
        self.create_table()

    def _connect_snowflake(self):
        # Clean account identifier - remove .snowflakecomputing.com if present
        account = os.getenv("SNOWFLAKE_ACCOUNT")
        if account and ".snowflakecomputing.com" in account:
            account = account.replace(".snowflakecomputing.com", "")
        return snowflake.connector.connect(
            user=os.getenv("SNOWFLAKE_USER"),
            password=os.getenv("SNOWFLAKE_PASSWORD"),
            account=account,
            warehouse=os.getenv("SNOWFLAKE_WAREHOUSE"),
            role=os.getenv("SNOWFLAKE_ROLE"),
            database=os.getenv("SNOWFLAKE_DATABASE", "MOVIES_DB"),
            schema=os.getenv("SNOWFLAKE_SCHEMA", "PUBLIC"),
        )

    def disconnect(self):
        """Close the store connection"""
        if self.cursor:
            self.cursor.close()
        if self.conn:
            self.conn.close()
        self.cursor = None
        self.conn = None
        logger.info(f"Disconnected from {self.backend} movie store")

    def __enter__(self) -> "MovieStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _execute(self, sql: str, params=()):
        if self.cursor is None:
            raise PersistenceError("Movie store is not connected")
        try:
            if params:
                self.cursor.execute(sql, params)
            else:
                self.cursor.execute(sql)
        except DB_ERRORS as e:
            raise PersistenceError(f"Store statement failed: {str(e)}") from e
        return self.cursor

    def _commit(self):
        try:
            self.conn.commit()
        except DB_ERRORS as e:
            raise PersistenceError(f"Store commit failed: {str(e)}") from e

    def _date_param(self, value: Optional[date]):
        if value is None:
            return None
        # sqlite3's implicit date adapter is deprecated; store ISO text instead
        return value.isoformat() if self.backend == "sqlite" else value

    # ============ Schema ============

    def create_table(self):
        """Create the movies table if it does not exist"""
        self._execute(CREATE_TABLE_SQL[self.backend])
        self._commit()
        logger.debug("movies table ready")

    # ============ Pipeline operations ============

    def days_since_update(self, title: str) -> Optional[int]:
        """Whole days since the newest row for title was written, or None if there is none"""
        row = self._execute(LAST_UPDATE_SQL, (title,)).fetchone()
        last_update = _to_date(row[0]) if row else None
        if last_update is None:
            return None
        return (self.clock() - last_update).days

    def upsert(self, record: MovieRecord) -> UpsertOutcome:
        """Insert or overwrite the row matching (title, external_id)"""
        today = self.clock()
        existing = self._execute(FIND_SQL, (record.title, record.external_id)).fetchone()

        if existing:
            self._execute(UPDATE_SQL, (
                self._date_param(record.release_date), record.stored_genre, record.rating,
                record.plot, record.poster, record.source_url, record.box_office,
                record.runtime_minutes, self._date_param(today),
                record.title, record.external_id,
            ))
            self._commit()
            logger.info(f"  Updated movie: {record.title} ({record.external_id})")
            return UpsertOutcome.UPDATED

        # Snowflake declares but does not enforce UNIQUE, so check explicitly
        clash = self._execute(FIND_BY_EXTERNAL_ID_SQL, (record.external_id,)).fetchone()
        if clash:
            raise PersistenceError(
                f"external_id {record.external_id} already stored under title {clash[0]!r}"
            )

        self._execute(INSERT_SQL, (
            record.title, record.external_id, self._date_param(record.release_date),
            record.stored_genre, record.rating, record.plot, record.poster,
            record.source_url, record.box_office, record.runtime_minutes,
            self._date_param(today), self._date_param(today),
        ))
        self._commit()
        logger.info(f"  Inserted new movie: {record.title} ({record.external_id})")
        return UpsertOutcome.INSERTED

    # ============ Browsing support ============

    def get_movie(self, external_id: str) -> Optional[dict]:
        cursor = self._execute(GET_SQL, (external_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        columns = [d[0].lower() for d in cursor.description]
        return dict(zip(columns, row))

    def set_watch_status(self, external_id: str, status: WatchStatus) -> None:
        """Mark a movie as wanted, seen, dismissed or clear it"""
        self._execute(SET_STATUS_SQL, (WatchStatus(status).value, external_id))
        self._commit()
        logger.info(f"Set watch status of {external_id} to {WatchStatus(status).name.lower()}")

    def list_movies(self, genre: str = "", title: str = "", min_rating: float = 6,
                    box_office_hits: bool = False, watch_list: bool = False,
                    limit: int = 200) -> pd.DataFrame:
        """Movies for the browsing view, newest release year first, then best rated"""
        clauses = ["1=1"]
        params = []

        if watch_list:
            clauses.append("watch_status = ?")
            params.append(WatchStatus.WANT.value)
        elif min_rating:
            clauses.append("CAST(rating AS REAL) >= ?")
            params.append(float(min_rating))
        if genre:
            clauses.append("genre LIKE LOWER(?)")
            params.append(f"%{genre}%")
        if box_office_hits:
            clauses.append("box_office > 1000000")
        if title:
            clauses.append("LOWER(title) LIKE LOWER(?)")
            params.append(f"%{title}%")
        else:
            clauses.append("watch_status NOT IN (?, ?)")
            params.extend([WatchStatus.SEEN.value, WatchStatus.DISMISSED.value])
        # Leave off short films; 0 means runtime never recorded
        clauses.append("(runtime_minutes >= 60 OR runtime_minutes = 0)")

        sql = (
            f"SELECT * FROM movies WHERE {' AND '.join(clauses)} "
            f"ORDER BY {RELEASE_YEAR_SQL[self.backend]} DESC, CAST(rating AS REAL) DESC "
            f"LIMIT {int(limit)}"
        )
        cursor = self._execute(sql, tuple(params))
        columns = [d[0].lower() for d in cursor.description]
        return pd.DataFrame(cursor.fetchall(), columns=columns)
