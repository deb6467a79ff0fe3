import os
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from app.application.services.security_service import hash_password
from app.domain.roles import UserRole
from app.infrastructure.db.models import School, User, UserProfile, UserSchoolRole
from app.infrastructure.db.session import Base, enable_sqlite_foreign_keys, get_db
from app.main import app
from tests.helpers.fake_redis import FakeRedisClient

REDIS_CONSUMERS = (
    "app.infrastructure.cache.cache_service.get_redis_client",
    "app.infrastructure.events.publisher.get_redis_client",
    "app.interfaces.api.v1.routes.ping.get_redis_client",
)


def run_migrations(database_url: str) -> None:
    from app.config import settings

    os.environ["DATABASE_URL"] = database_url
    settings.database_url = database_url
    alembic_config = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    alembic_config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_config, "head")


def prepare_postgres(database_url: str):
    engine = create_engine(database_url, future=True)
    with engine.begin() as connection:
        connection.execute(text("DROP SCHEMA public CASCADE"))
        connection.execute(text("CREATE SCHEMA public"))
    run_migrations(database_url=database_url)
    return engine


@pytest.fixture(scope="session")
def engine(tmp_path_factory):
    database_url = os.getenv("TEST_DATABASE_URL")
    if os.getenv("TEST_USE_TESTCONTAINERS") == "1":
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer("postgres:16-alpine") as postgres:
            url = postgres.get_connection_url().replace("postgresql://", "postgresql+psycopg2://", 1)
            engine = prepare_postgres(url)
            try:
                yield engine
            finally:
                engine.dispose()
        return

    if database_url:
        engine = prepare_postgres(database_url)
    else:
        sqlite_path = tmp_path_factory.mktemp("db") / "ledger.db"
        engine = create_engine(
            f"sqlite:///{sqlite_path}", future=True, connect_args={"check_same_thread": False}
        )
        enable_sqlite_foreign_keys(engine)
        Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(autouse=True)
def clean_database(engine):
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    client = FakeRedisClient()
    for target in REDIS_CONSUMERS:
        monkeypatch.setattr(target, lambda: client)
    return client


@pytest.fixture
def db_session(engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_users(db_session):
    admin = User(email="admin@example.com", hashed_password=hash_password("admin123"), is_active=True)
    admin.profile = UserProfile(first_name="Admin", last_name="One", phone="111")

    accountant = User(email="accountant@example.com", hashed_password=hash_password("accountant123"), is_active=True)
    accountant.profile = UserProfile(first_name="Accountant", last_name="One", phone="222")

    teacher = User(email="teacher@example.com", hashed_password=hash_password("teacher123"), is_active=True)
    teacher.profile = UserProfile(first_name="Teacher", last_name="One", phone="333")

    north_school = School(name="North Grammar", slug="north-grammar")
    south_school = School(name="South Grammar", slug="south-grammar")

    db_session.add_all([admin, accountant, teacher, north_school, south_school])
    db_session.commit()
    for entity in (admin, accountant, teacher, north_school, south_school):
        db_session.refresh(entity)

    db_session.add_all(
        [
            UserSchoolRole(user_id=admin.id, school_id=north_school.id, role=UserRole.admin.value),
            UserSchoolRole(user_id=admin.id, school_id=south_school.id, role=UserRole.admin.value),
            UserSchoolRole(user_id=accountant.id, school_id=north_school.id, role=UserRole.accountant.value),
            UserSchoolRole(user_id=teacher.id, school_id=north_school.id, role=UserRole.teacher.value),
        ]
    )
    db_session.commit()

    return {
        "admin": admin,
        "accountant": accountant,
        "teacher": teacher,
        "north_school": north_school,
        "south_school": south_school,
    }
