import os

# The app module builds its database engine at import time.
os.environ.setdefault("TIMETABLE_DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timetable_engine.api.deps import get_db
from timetable_engine.core.config import Settings
from timetable_engine.db.base import Base
from timetable_engine.main import app
from timetable_engine.schemas.directory import DirectoryPayload
from timetable_engine.services.directory import SchoolDirectory
from timetable_engine.services.engine import TimetableEngine

MONDAY = "2024-05-06"

DIRECTORY = {
    "wings": [
        {"id": "primary", "name": "Primary"},
        {"id": "secondary", "name": "Secondary"},
    ],
    "sections": [
        {"id": "IV A", "wing_id": "primary"},
        {"id": "IV B", "wing_id": "primary"},
        {"id": "8B", "name": "VIII B", "wing_id": "secondary"},
        {"id": "9A", "name": "IX A", "wing_id": "secondary"},
        {"id": "9B", "name": "IX B", "wing_id": "secondary"},
        {"id": "11A", "name": "XI A", "wing_id": "secondary"},
    ],
    "teachers": [
        {"id": "T1", "name": "Amal"},
        {"id": "T2", "name": "Bushra"},
        {"id": "T3", "name": "Chitra", "class_teacher_of": "IV A"},
        {"id": "T4", "name": "Deepak", "class_teacher_of": "11A"},
        {"id": "T5", "name": "Elena", "class_teacher_of": "IV B"},
        {"id": "T6", "name": "Farid"},
    ],
    "assignments": [
        {
            "teacher_id": "T3",
            "grade": "IV",
            "loads": [{"subject": "English", "periods": 6}, {"subject": "EVS", "periods": 3}],
            "anchor_subject": "EVS",
        },
        {"teacher_id": "T4", "grade": "XI", "loads": [{"subject": "Physics", "periods": 5}]},
    ],
}


def make_settings(**overrides) -> Settings:
    values = {"database_url": "sqlite+pysqlite://", "auto_create_tables": False}
    values.update(overrides)
    return Settings(**values)


def make_engine(**overrides) -> TimetableEngine:
    directory = SchoolDirectory(DirectoryPayload.model_validate(DIRECTORY))
    return TimetableEngine(settings=make_settings(**overrides), directory=directory)


@pytest.fixture()
def engine():
    return make_engine()


@pytest.fixture()
def session_factory():
    db_engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=db_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db_engine.dispose()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def seeded_client(client):
    response = client.put("/api/directory", json=DIRECTORY)
    assert response.status_code == 200
    return client
