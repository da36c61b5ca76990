import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_lock_service, get_notification_service
from app.data.database import get_db
from app.main import create_app


@pytest.fixture()
def client(session_factory, lock_service, notifier, catalog):
    app = create_app(with_lifespan=False)

    def _db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_notification_service] = lambda: notifier

    with TestClient(app) as client:
        yield client
