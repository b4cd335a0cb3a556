import os

# Must be set before the app settings are first imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.main import app
from app.models import SharePermission, Task, TaskShare

OWNER_ID = 1
OTHER_USER_ID = 2

# A Monday
SERIES_START = datetime(2026, 1, 5, 9, 0)


def auth_headers(user_id: int = OWNER_ID) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_task(db):
    def _make_task(
        user_id: int = OWNER_ID,
        title: str = "Water the plants",
        start_datetime: datetime | None = SERIES_START,
        **kwargs,
    ) -> Task:
        task = Task(user_id=user_id, title=title, start_datetime=start_datetime, **kwargs)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return _make_task


@pytest.fixture()
def share_task(db):
    def _share_task(
        task: Task,
        user_id: int = OTHER_USER_ID,
        permission: SharePermission = SharePermission.VIEW,
    ) -> TaskShare:
        share = TaskShare(task_id=task.id, shared_with_id=user_id, permission=permission)
        db.add(share)
        db.commit()
        return share

    return _share_task
