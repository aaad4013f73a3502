"""Fixtures: an in-memory sqlite store seeded with a small portfolio."""

import hashlib

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from kam_hub.portfolio import (
    AccessControl,
    PortfolioMutations,
    PortfolioQueries,
    QueryCache,
)

SCHEMA = [
    """
    CREATE TABLE restaurants (
        res_id TEXT PRIMARY KEY,
        res_name TEXT NOT NULL,
        kam_name TEXT,
        kam_email TEXT,
        tl_email TEXT,
        cuisine TEXT,
        locality TEXT,
        concat_field TEXT,
        account_type TEXT,
        sept_ov REAL,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE drives (
        id INTEGER PRIMARY KEY,
        drive_name TEXT NOT NULL,
        drive_type TEXT,
        city TEXT,
        start_date TEXT,
        end_date TEXT,
        status TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE drive_data (
        id INTEGER PRIMARY KEY,
        res_id TEXT REFERENCES restaurants(res_id),
        drive_id INTEGER REFERENCES drives(id),
        la REAL,
        mm REAL,
        um REAL,
        la_base_code_suggested TEXT,
        la_step1 TEXT,
        la_step2 TEXT,
        la_step3 TEXT,
        mm_base_code_suggested TEXT,
        um_base_code_suggested TEXT,
        la_active_promos TEXT,
        mm_active_promos TEXT,
        um_active_promos TEXT,
        approached BOOLEAN,
        converted_stepper BOOLEAN,
        priority_score REAL,
        last_updated TEXT
    )
    """,
    """
    CREATE TABLE conversion_tracking (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        res_id TEXT REFERENCES restaurants(res_id),
        drive_id INTEGER REFERENCES drives(id),
        kam_email TEXT NOT NULL,
        action_type TEXT NOT NULL,
        action_date TEXT,
        notes TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE kam_users (
        id INTEGER PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        full_name TEXT,
        role TEXT,
        password_hash TEXT,
        password_salt TEXT,
        is_active BOOLEAN,
        last_login TEXT
    )
    """,
]

DRIVES = [
    # id, name, type, city, start, end, status
    (1, "NCN January", "NCN", "Pune", "2025-01-01", "2025-01-31", "active"),
    (2, "N2R March", "N2R", "Pune", "2025-03-01", "2025-03-31", "active"),
    (3, "MRP February", "MRP", "Mumbai", "2025-02-01", "2025-02-28", "active"),
    (5, "MRP October", "MRP", "Pune", "2024-10-01", "2024-10-31", "completed"),
]

RESTAURANTS = [
    # res_id, name, kam_name, kam_email, tl_email, cuisine, locality, sept_ov
    ("R1", "Biryani House", "Asha", "asha@zomato.com", "tl@zomato.com", "Mughlai", "Kothrud", 120000.0),
    ("R2", "Anand Dhaba", "Asha", "asha@zomato.com", "tl@zomato.com", "North Indian", "Baner", 45000.0),
    ("R3", "Cafe Mocha", "Bhavesh", "bhavesh@zomato.com", "tl@zomato.com", "Cafe", "Aundh", 80000.0),
    ("R4", "Zaika", "Chitra", "chitra@zomato.com", "other.tl@zomato.com", "North Indian", "Wakad", None),
]

DRIVE_DATA = [
    # id, res_id, drive_id, approached, converted, priority
    (1, "R1", 1, 0, 0, 80.0),
    (2, "R1", 2, 1, 0, 60.0),
    (3, "R2", 1, 1, 1, 90.0),
    (4, "R3", 3, 0, 0, 40.0),
    (5, "R4", 1, 0, 0, None),
    (6, "R1", 5, 0, 0, 20.0),
]

PASSWORD_SALT = "a1b2c3"


def hash_password(password: str, salt: str = PASSWORD_SALT) -> str:
    return hashlib.sha256((password + salt).encode()).hexdigest()


def seed(conn):
    for statement in SCHEMA:
        conn.execute(text(statement))

    for row in DRIVES:
        conn.execute(text("""
            INSERT INTO drives (id, drive_name, drive_type, city, start_date, end_date, status, created_at)
            VALUES (:id, :name, :type, :city, :start, :end, :status, '2024-09-01T00:00:00')
        """), dict(zip(['id', 'name', 'type', 'city', 'start', 'end', 'status'], row)))

    for row in RESTAURANTS:
        conn.execute(text("""
            INSERT INTO restaurants (res_id, res_name, kam_name, kam_email, tl_email,
                                     cuisine, locality, account_type, sept_ov, created_at, updated_at)
            VALUES (:res_id, :name, :kam_name, :kam_email, :tl_email,
                    :cuisine, :locality, 'KA', :sept_ov, '2024-09-01T00:00:00', '2024-09-01T00:00:00')
        """), dict(zip(['res_id', 'name', 'kam_name', 'kam_email', 'tl_email',
                        'cuisine', 'locality', 'sept_ov'], row)))

    for row in DRIVE_DATA:
        conn.execute(text("""
            INSERT INTO drive_data (id, res_id, drive_id, la, mm, um, la_base_code_suggested,
                                    approached, converted_stepper, priority_score, last_updated)
            VALUES (:id, :res_id, :drive_id, 100, 50, 25, 'FLAT50',
                    :approached, :converted, :priority, '2024-09-01T00:00:00')
        """), dict(zip(['id', 'res_id', 'drive_id', 'approached', 'converted', 'priority'], row)))

    users = [
        (1, "asha@zomato.com", "Asha", "kam", hash_password("secret"), PASSWORD_SALT, 1),
        (2, "tl@zomato.com", "Tara", "team_lead", hash_password("secret"), PASSWORD_SALT, 1),
        (3, "gone@zomato.com", "Gone", "kam", hash_password("secret"), PASSWORD_SALT, 0),
    ]
    for row in users:
        conn.execute(text("""
            INSERT INTO kam_users (id, email, full_name, role, password_hash, password_salt, is_active)
            VALUES (:id, :email, :full_name, :role, :hash, :salt, :active)
        """), dict(zip(['id', 'email', 'full_name', 'role', 'hash', 'salt', 'active'], row)))


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with eng.begin() as conn:
        seed(conn)
    yield eng
    eng.dispose()


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def kam_access():
    return AccessControl(user_role="kam", user_email="asha@zomato.com")


@pytest.fixture
def admin_access():
    return AccessControl(user_role="admin", user_email="boss@zomato.com")


@pytest.fixture
def queries(kam_access, engine, cache):
    return PortfolioQueries(kam_access, engine=engine, cache=cache)


@pytest.fixture
def admin_queries(admin_access, engine, cache):
    return PortfolioQueries(admin_access, engine=engine, cache=cache)


@pytest.fixture
def mutations(kam_access, engine, cache):
    return PortfolioMutations(kam_access, cache=cache, engine=engine, atomic=False)


def fetch_drive_data(engine, res_id, drive_id):
    with engine.connect() as conn:
        return conn.execute(
            text("SELECT approached, converted_stepper, last_updated FROM drive_data "
                 "WHERE res_id = :res_id AND drive_id = :drive_id"),
            {"res_id": res_id, "drive_id": drive_id},
        ).fetchone()


def count_tracking(engine, **filters):
    clause = "".join(f" AND {col} = :{col}" for col in filters)
    with engine.connect() as conn:
        return conn.execute(
            text(f"SELECT COUNT(*) FROM conversion_tracking WHERE 1 = 1{clause}"), filters
        ).scalar()
