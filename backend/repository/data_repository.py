"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Iterator, List, Optional

from backend.domain.models import Booking, LessonContent, Pricing, ProgressReport, Student
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def _to_db(value: datetime) -> str:
    # Fixed-width text keeps lexicographic and chronological order identical.
    return value.strftime(_TIMESTAMP_FORMAT)


def _from_db(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.strptime(value, _TIMESTAMP_FORMAT)


_STUDENT_SELECT = """
SELECT s.*, p.hourly_rate, p.lesson_duration, p.payment_terms
FROM Students s
LEFT JOIN Pricing p ON p.student_id = s.id
"""


def _row_to_student(row: sqlite3.Row) -> Student:
    pricing = None
    if row["hourly_rate"] is not None:
        pricing = Pricing(
            hourly_rate=float(row["hourly_rate"]),
            lesson_duration=int(row["lesson_duration"]),
            payment_terms=row["payment_terms"],
        )
    return Student(
        student_id=int(row["id"]),
        name=str(row["name"]),
        age=int(row["age"]),
        grade=row["grade"],
        email=row["email"],
        phone=row["phone"],
        notes=row["notes"],
        pricing=pricing,
    )


def _row_to_booking(row: sqlite3.Row) -> Booking:
    return Booking(
        booking_id=int(row["id"]),
        student_id=int(row["student_id"]),
        start=_from_db(row["start_time"]),
        end=_from_db(row["end_time"]),
        location=str(row["location"]),
        notes=row["notes"],
    )


def _row_to_lesson_content(row: sqlite3.Row) -> LessonContent:
    return LessonContent(
        content_id=int(row["id"]),
        student_id=int(row["student_id"]),
        title=str(row["title"]),
        content_type=str(row["content_type"]),
        difficulty_level=int(row["difficulty_level"]),
        estimated_duration=int(row["estimated_duration"]),
        description=row["description"],
        notes=row["notes"],
        completed=bool(row["completed"]),
        completion_date=_from_db(row["completion_date"]),
    )


def _row_to_progress_report(row: sqlite3.Row) -> ProgressReport:
    return ProgressReport(
        report_id=int(row["id"]),
        student_id=int(row["student_id"]),
        report_type=str(row["report_type"]),
        report_period=str(row["report_period"]),
        overall_progress=float(row["overall_progress"]),
        report_date=_from_db(row["report_date"]),
        technical_skills=row["technical_skills"],
        theory_knowledge=row["theory_knowledge"],
        repertoire_skills=row["repertoire_skills"],
        practice_habits=row["practice_habits"],
        strengths=row["strengths"],
        areas_for_improvement=row["areas_for_improvement"],
        recommendations=row["recommendations"],
        next_goals=row["next_goals"],
        teacher_notes=row["teacher_notes"],
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _session(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Reuse a caller's transaction connection or open a short-lived one."""
        if conn is not None:
            yield conn
            return
        connection = self._connect()
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    @contextmanager
    def write_transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialize check-then-write sequences across writers.

        BEGIN IMMEDIATE takes the database reserved lock up front, so a second
        writer blocks until this transaction commits and then sees its rows.
        """
        connection = self._connect()
        connection.isolation_level = None
        try:
            connection.execute("BEGIN IMMEDIATE;")
            try:
                yield connection
            except BaseException:
                connection.execute("ROLLBACK;")
                raise
            connection.execute("COMMIT;")
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._session() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Students (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        age INTEGER NOT NULL CHECK (age BETWEEN 5 AND 100),
                        grade TEXT,
                        email TEXT,
                        phone TEXT,
                        notes TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_id INTEGER NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        location TEXT NOT NULL,
                        notes TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (end_time > start_time),
                        FOREIGN KEY (student_id) REFERENCES Students(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS LessonContent (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_id INTEGER NOT NULL,
                        title TEXT NOT NULL,
                        description TEXT,
                        content_type TEXT NOT NULL,
                        difficulty_level INTEGER NOT NULL CHECK (difficulty_level BETWEEN 1 AND 10),
                        estimated_duration INTEGER NOT NULL CHECK (estimated_duration >= 1),
                        notes TEXT,
                        completed INTEGER NOT NULL DEFAULT 0 CHECK (completed IN (0,1)),
                        completion_date TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (student_id) REFERENCES Students(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ProgressReports (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_id INTEGER NOT NULL,
                        report_type TEXT NOT NULL,
                        report_period TEXT NOT NULL,
                        overall_progress REAL NOT NULL,
                        technical_skills REAL,
                        theory_knowledge REAL,
                        repertoire_skills REAL,
                        practice_habits REAL,
                        strengths TEXT,
                        areas_for_improvement TEXT,
                        recommendations TEXT,
                        next_goals TEXT,
                        teacher_notes TEXT,
                        report_date TEXT NOT NULL,
                        FOREIGN KEY (student_id) REFERENCES Students(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Pricing (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_id INTEGER NOT NULL UNIQUE,
                        hourly_rate REAL NOT NULL CHECK (hourly_rate > 0),
                        lesson_duration INTEGER NOT NULL CHECK (lesson_duration > 0),
                        payment_terms TEXT,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (student_id) REFERENCES Students(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_student_start
                    ON Bookings(student_id, start_time);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_start_end
                    ON Bookings(start_time, end_time);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_lesson_content_student
                    ON LessonContent(student_id, completed);
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> int:
        """Insert demo students and past lessons only when Students is empty."""
        try:
            with self.write_transaction() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Students;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return 0

                alice_id = self.create_student(
                    "Alice Moreau", 12, "Grade 3", "alice@example.com", None, None, conn=conn
                )
                ben_id = self.create_student(
                    "Ben Okafor", 34, "Adult beginner", "ben@example.com", None, None, conn=conn
                )

                today = datetime.combine(datetime.now().date(), time.min)
                last_tuesday = today - timedelta(days=(today.weekday() - 1) % 7 or 7)
                last_thursday = today - timedelta(days=(today.weekday() - 3) % 7 or 7)
                lessons = []
                for weeks_back in range(4):
                    tuesday = last_tuesday - timedelta(weeks=weeks_back)
                    thursday = last_thursday - timedelta(weeks=weeks_back)
                    lessons.append((alice_id, tuesday + timedelta(hours=16), 45))
                    lessons.append((ben_id, thursday + timedelta(hours=18), 60))
                for student_id, start, minutes in lessons:
                    self.insert_booking(
                        student_id,
                        start,
                        start + timedelta(minutes=minutes),
                        "Studio",
                        None,
                        conn=conn,
                    )
            logger.info("Demo seed completed with %s lessons", len(lessons))
            return len(lessons)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    # Students

    def create_student(
        self,
        name: str,
        age: int,
        grade: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        notes: Optional[str],
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        with self._session(conn) as session:
            cursor = session.execute(
                """
                INSERT INTO Students (name, age, grade, email, phone, notes)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (name, age, grade, email, phone, notes),
            )
            return int(cursor.lastrowid)

    def update_student(
        self,
        student_id: int,
        name: str,
        age: int,
        grade: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        notes: Optional[str],
    ) -> None:
        with self._session() as conn:
            conn.execute(
                """
                UPDATE Students
                SET name = ?, age = ?, grade = ?, email = ?, phone = ?, notes = ?
                WHERE id = ?;
                """,
                (name, age, grade, email, phone, notes, student_id),
            )

    def delete_student(self, student_id: int) -> None:
        with self._session() as conn:
            conn.execute("DELETE FROM Students WHERE id = ?;", (student_id,))

    def get_student(self, student_id: int) -> Optional[Student]:
        with self._session() as conn:
            row = conn.execute(_STUDENT_SELECT + "WHERE s.id = ?;", (student_id,)).fetchone()
            return _row_to_student(row) if row is not None else None

    def student_exists(self, student_id: int) -> bool:
        with self._session() as conn:
            row = conn.execute("SELECT 1 FROM Students WHERE id = ?;", (student_id,)).fetchone()
            return row is not None

    def list_students(self) -> List[Student]:
        with self._session() as conn:
            rows = conn.execute(_STUDENT_SELECT + "ORDER BY s.name ASC, s.id ASC;").fetchall()
            return [_row_to_student(row) for row in rows]

    def search_students_by_name(self, term: str) -> List[Student]:
        with self._session() as conn:
            rows = conn.execute(
                _STUDENT_SELECT
                + """
                WHERE LOWER(s.name) LIKE LOWER(?)
                ORDER BY s.name ASC, s.id ASC;
                """,
                (f"%{term}%",),
            ).fetchall()
            return [_row_to_student(row) for row in rows]

    def find_student_by_email(self, email: str) -> Optional[Student]:
        with self._session() as conn:
            row = conn.execute(
                _STUDENT_SELECT + "WHERE LOWER(s.email) = LOWER(?);",
                (email,),
            ).fetchone()
            return _row_to_student(row) if row is not None else None

    def find_student_by_phone(self, phone: str) -> Optional[Student]:
        with self._session() as conn:
            row = conn.execute(_STUDENT_SELECT + "WHERE s.phone = ?;", (phone,)).fetchone()
            return _row_to_student(row) if row is not None else None

    def list_students_by_pricing(self, has_pricing: bool) -> List[Student]:
        condition = "p.id IS NOT NULL" if has_pricing else "p.id IS NULL"
        with self._session() as conn:
            rows = conn.execute(
                _STUDENT_SELECT + f"WHERE {condition} ORDER BY s.name ASC, s.id ASC;"
            ).fetchall()
            return [_row_to_student(row) for row in rows]

    # Pricing

    def upsert_pricing(self, student_id: int, pricing: Pricing) -> None:
        """Attach pricing to a student, replacing any existing row."""
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO Pricing (student_id, hourly_rate, lesson_duration, payment_terms)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(student_id) DO UPDATE SET
                    hourly_rate = excluded.hourly_rate,
                    lesson_duration = excluded.lesson_duration,
                    payment_terms = excluded.payment_terms,
                    updated_at = CURRENT_TIMESTAMP;
                """,
                (student_id, pricing.hourly_rate, pricing.lesson_duration, pricing.payment_terms),
            )

    def delete_pricing(self, student_id: int) -> None:
        with self._session() as conn:
            conn.execute("DELETE FROM Pricing WHERE student_id = ?;", (student_id,))

    def average_hourly_rate(self) -> Optional[float]:
        with self._session() as conn:
            row = conn.execute("SELECT AVG(hourly_rate) AS average FROM Pricing;").fetchone()
            return float(row["average"]) if row["average"] is not None else None

    def count_pricing_by_lesson_duration(self) -> List[tuple[int, int]]:
        """(lesson_duration, count) pairs, most common first."""
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT lesson_duration, COUNT(*) AS count
                FROM Pricing
                GROUP BY lesson_duration
                ORDER BY count DESC, lesson_duration ASC;
                """
            ).fetchall()
            return [(int(row["lesson_duration"]), int(row["count"])) for row in rows]

    # Bookings

    def insert_booking(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        location: str,
        notes: Optional[str],
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        with self._session(conn) as session:
            cursor = session.execute(
                """
                INSERT INTO Bookings (student_id, start_time, end_time, location, notes)
                VALUES (?, ?, ?, ?, ?);
                """,
                (student_id, _to_db(start), _to_db(end), location, notes),
            )
            return int(cursor.lastrowid)

    def update_booking(
        self,
        booking_id: int,
        student_id: int,
        start: datetime,
        end: datetime,
        location: str,
        notes: Optional[str],
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        with self._session(conn) as session:
            session.execute(
                """
                UPDATE Bookings
                SET student_id = ?, start_time = ?, end_time = ?, location = ?, notes = ?
                WHERE id = ?;
                """,
                (student_id, _to_db(start), _to_db(end), location, notes, booking_id),
            )

    def update_booking_location(self, booking_id: int, location: str) -> None:
        with self._session() as conn:
            conn.execute("UPDATE Bookings SET location = ? WHERE id = ?;", (location, booking_id))

    def update_booking_notes(self, booking_id: int, notes: Optional[str]) -> None:
        with self._session() as conn:
            conn.execute("UPDATE Bookings SET notes = ? WHERE id = ?;", (notes, booking_id))

    def delete_booking(self, booking_id: int) -> None:
        with self._session() as conn:
            conn.execute("DELETE FROM Bookings WHERE id = ?;", (booking_id,))

    def get_booking(
        self,
        booking_id: int,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Booking]:
        with self._session(conn) as session:
            row = session.execute("SELECT * FROM Bookings WHERE id = ?;", (booking_id,)).fetchone()
            return _row_to_booking(row) if row is not None else None

    def list_bookings(self) -> List[Booking]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM Bookings ORDER BY start_time ASC, id ASC;").fetchall()
            return [_row_to_booking(row) for row in rows]

    def get_all_bookings_for_student(
        self,
        student_id: int,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[Booking]:
        """Full booking history for a student in chronological order."""
        with self._session(conn) as session:
            rows = session.execute(
                """
                SELECT * FROM Bookings
                WHERE student_id = ?
                ORDER BY start_time ASC, id ASC;
                """,
                (student_id,),
            ).fetchall()
            return [_row_to_booking(row) for row in rows]

    def get_bookings_for_student_in_range(
        self,
        student_id: int,
        start: datetime,
        end: datetime,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[Booking]:
        """Bookings that may touch [start, end), prefiltered at whole-day granularity.

        Callers decide actual overlap with ``intervals_overlap``.
        """
        lower = datetime.combine(start.date(), time.min)
        upper = datetime.combine(end.date(), time.min) + timedelta(days=1)
        with self._session(conn) as session:
            rows = session.execute(
                """
                SELECT * FROM Bookings
                WHERE student_id = ?
                  AND start_time < ?
                  AND end_time > ?
                ORDER BY start_time ASC, id ASC;
                """,
                (student_id, _to_db(upper), _to_db(lower)),
            ).fetchall()
            return [_row_to_booking(row) for row in rows]

    def list_bookings_starting_between(
        self,
        start: datetime,
        end: datetime,
        student_id: Optional[int] = None,
    ) -> List[Booking]:
        """Bookings whose start falls inside the closed range [start, end]."""
        query = "SELECT * FROM Bookings WHERE start_time >= ? AND start_time <= ?"
        params: list[object] = [_to_db(start), _to_db(end)]
        if student_id is not None:
            query += " AND student_id = ?"
            params.append(student_id)
        query += " ORDER BY start_time ASC, id ASC;"
        with self._session() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_booking(row) for row in rows]

    def list_bookings_starting_after(self, moment: datetime) -> List[Booking]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM Bookings WHERE start_time > ? ORDER BY start_time ASC, id ASC;",
                (_to_db(moment),),
            ).fetchall()
            return [_row_to_booking(row) for row in rows]

    def list_bookings_in_progress(self, moment: datetime) -> List[Booking]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT * FROM Bookings
                WHERE start_time <= ? AND end_time >= ?
                ORDER BY start_time ASC, id ASC;
                """,
                (_to_db(moment), _to_db(moment)),
            ).fetchall()
            return [_row_to_booking(row) for row in rows]

    def list_bookings_ended_before(self, moment: datetime) -> List[Booking]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM Bookings WHERE end_time < ? ORDER BY start_time ASC, id ASC;",
                (_to_db(moment),),
            ).fetchall()
            return [_row_to_booking(row) for row in rows]

    def search_bookings_by_location(self, term: str) -> List[Booking]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT * FROM Bookings
                WHERE LOWER(location) LIKE LOWER(?)
                ORDER BY start_time ASC, id ASC;
                """,
                (f"%{term}%",),
            ).fetchall()
            return [_row_to_booking(row) for row in rows]

    def count_bookings_by_student(self) -> dict[int, int]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT student_id, COUNT(*) AS count
                FROM Bookings
                GROUP BY student_id
                ORDER BY student_id ASC;
                """
            ).fetchall()
            return {int(row["student_id"]): int(row["count"]) for row in rows}

    def count_bookings_by_location(self) -> dict[str, int]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT location, COUNT(*) AS count
                FROM Bookings
                GROUP BY location
                ORDER BY location ASC;
                """
            ).fetchall()
            return {str(row["location"]): int(row["count"]) for row in rows}

    # Lesson content

    def create_lesson_content(
        self,
        student_id: int,
        title: str,
        content_type: str,
        difficulty_level: int,
        estimated_duration: int,
        description: Optional[str],
        notes: Optional[str],
    ) -> int:
        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO LessonContent (
                    student_id,
                    title,
                    content_type,
                    difficulty_level,
                    estimated_duration,
                    description,
                    notes
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    student_id,
                    title,
                    content_type,
                    difficulty_level,
                    estimated_duration,
                    description,
                    notes,
                ),
            )
            return int(cursor.lastrowid)

    def update_lesson_content(
        self,
        content_id: int,
        title: str,
        content_type: str,
        difficulty_level: int,
        estimated_duration: int,
        description: Optional[str],
        notes: Optional[str],
    ) -> None:
        with self._session() as conn:
            conn.execute(
                """
                UPDATE LessonContent
                SET title = ?,
                    content_type = ?,
                    difficulty_level = ?,
                    estimated_duration = ?,
                    description = ?,
                    notes = ?
                WHERE id = ?;
                """,
                (
                    title,
                    content_type,
                    difficulty_level,
                    estimated_duration,
                    description,
                    notes,
                    content_id,
                ),
            )

    def set_lesson_content_completion(
        self,
        content_id: int,
        completed: bool,
        completion_date: Optional[datetime],
    ) -> None:
        with self._session() as conn:
            conn.execute(
                "UPDATE LessonContent SET completed = ?, completion_date = ? WHERE id = ?;",
                (
                    1 if completed else 0,
                    _to_db(completion_date) if completion_date is not None else None,
                    content_id,
                ),
            )

    def delete_lesson_content(self, content_id: int) -> None:
        with self._session() as conn:
            conn.execute("DELETE FROM LessonContent WHERE id = ?;", (content_id,))

    def get_lesson_content(self, content_id: int) -> Optional[LessonContent]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM LessonContent WHERE id = ?;",
                (content_id,),
            ).fetchone()
            return _row_to_lesson_content(row) if row is not None else None

    def find_lesson_content(
        self,
        student_id: Optional[int] = None,
        *,
        completed: Optional[bool] = None,
        content_type: Optional[str] = None,
        difficulty_level: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[LessonContent]:
        """Lesson content matching every given filter; ``search`` looks in title and description."""
        query = "SELECT * FROM LessonContent WHERE 1 = 1"
        params: list[object] = []
        if student_id is not None:
            query += " AND student_id = ?"
            params.append(student_id)
        if completed is not None:
            query += " AND completed = ?"
            params.append(1 if completed else 0)
        if content_type is not None:
            query += " AND content_type = ?"
            params.append(content_type)
        if difficulty_level is not None:
            query += " AND difficulty_level = ?"
            params.append(difficulty_level)
        if search is not None:
            query += " AND (LOWER(title) LIKE LOWER(?) OR LOWER(COALESCE(description, '')) LIKE LOWER(?))"
            params.extend([f"%{search}%", f"%{search}%"])
        query += " ORDER BY id ASC;"
        with self._session() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_lesson_content(row) for row in rows]

    def count_lesson_content_completion(self, student_id: Optional[int] = None) -> tuple[int, int]:
        """(total, completed) over one student or, with no id, over everyone."""
        query = "SELECT COUNT(*) AS total, COALESCE(SUM(completed), 0) AS done FROM LessonContent"
        params: tuple[object, ...] = ()
        if student_id is not None:
            query += " WHERE student_id = ?"
            params = (student_id,)
        with self._session() as conn:
            row = conn.execute(query + ";", params).fetchone()
            return int(row["total"]), int(row["done"])

    # Progress reports

    def create_progress_report(self, report: ProgressReport) -> int:
        """Insert a report; ``report.report_id`` is ignored."""
        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO ProgressReports (
                    student_id,
                    report_type,
                    report_period,
                    overall_progress,
                    technical_skills,
                    theory_knowledge,
                    repertoire_skills,
                    practice_habits,
                    strengths,
                    areas_for_improvement,
                    recommendations,
                    next_goals,
                    teacher_notes,
                    report_date
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    report.student_id,
                    report.report_type,
                    report.report_period,
                    report.overall_progress,
                    report.technical_skills,
                    report.theory_knowledge,
                    report.repertoire_skills,
                    report.practice_habits,
                    report.strengths,
                    report.areas_for_improvement,
                    report.recommendations,
                    report.next_goals,
                    report.teacher_notes,
                    _to_db(report.report_date),
                ),
            )
            return int(cursor.lastrowid)

    def update_progress_report(self, report: ProgressReport) -> None:
        """Replace every stored field of ``report.report_id``."""
        with self._session() as conn:
            conn.execute(
                """
                UPDATE ProgressReports
                SET student_id = ?,
                    report_type = ?,
                    report_period = ?,
                    overall_progress = ?,
                    technical_skills = ?,
                    theory_knowledge = ?,
                    repertoire_skills = ?,
                    practice_habits = ?,
                    strengths = ?,
                    areas_for_improvement = ?,
                    recommendations = ?,
                    next_goals = ?,
                    teacher_notes = ?,
                    report_date = ?
                WHERE id = ?;
                """,
                (
                    report.student_id,
                    report.report_type,
                    report.report_period,
                    report.overall_progress,
                    report.technical_skills,
                    report.theory_knowledge,
                    report.repertoire_skills,
                    report.practice_habits,
                    report.strengths,
                    report.areas_for_improvement,
                    report.recommendations,
                    report.next_goals,
                    report.teacher_notes,
                    _to_db(report.report_date),
                    report.report_id,
                ),
            )

    def get_progress_report(self, report_id: int) -> Optional[ProgressReport]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM ProgressReports WHERE id = ?;",
                (report_id,),
            ).fetchone()
            return _row_to_progress_report(row) if row is not None else None

    def find_progress_reports(
        self,
        student_id: Optional[int] = None,
        *,
        report_type: Optional[str] = None,
        report_period: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        min_progress: Optional[float] = None,
        max_progress: Optional[float] = None,
    ) -> List[ProgressReport]:
        """Reports matching every given filter, newest first; date bounds are inclusive."""
        query = "SELECT * FROM ProgressReports WHERE 1 = 1"
        params: list[object] = []
        if student_id is not None:
            query += " AND student_id = ?"
            params.append(student_id)
        if report_type is not None:
            query += " AND report_type = ?"
            params.append(report_type)
        if report_period is not None:
            query += " AND report_period = ?"
            params.append(report_period)
        if start is not None:
            query += " AND report_date >= ?"
            params.append(_to_db(start))
        if end is not None:
            query += " AND report_date <= ?"
            params.append(_to_db(end))
        if min_progress is not None:
            query += " AND overall_progress >= ?"
            params.append(min_progress)
        if max_progress is not None:
            query += " AND overall_progress <= ?"
            params.append(max_progress)
        query += " ORDER BY report_date DESC, id DESC;"
        with self._session() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [_row_to_progress_report(row) for row in rows]

    def delete_progress_report(self, report_id: int) -> None:
        with self._session() as conn:
            conn.execute("DELETE FROM ProgressReports WHERE id = ?;", (report_id,))
