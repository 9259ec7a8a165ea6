import json
import os
from types import SimpleNamespace

import httpx
import pytest

os.environ["DATABASE_URL"] = "sqlite:///./test_subtrack.db"
os.environ.pop("CLICKUP_API_KEY", None)

from fastapi.testclient import TestClient

from subtrack.db.session import SessionLocal, engine
from subtrack.main import app
from subtrack.models.db_models import Base
from subtrack.services.clickup import ClickUpClient, get_clickup_client


@pytest.fixture(autouse=True)
def _reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def _make_task(task_id, description="", name="", live_url=None, **fields):
    """ClickUp task JSON with optional Live URL and extra text custom fields."""
    custom = []
    if live_url is not None:
        custom.append({"id": "f-url", "name": "*Live URL", "type": "url", "value": live_url})
    for name_, value in fields.items():
        custom.append(value if isinstance(value, dict) else {"name": name_, "type": "short_text", "value": value})
    return {"id": task_id, "name": name, "markdown_description": description, "custom_fields": custom}


@pytest.fixture
def fake_clickup():
    """ClickUp stand-in served from a dict of tasks; posted comments are recorded."""
    tasks, posted = {}, []

    def handler(request: httpx.Request) -> httpx.Response:
        parts = request.url.path.rstrip("/").split("/")
        if parts[-1] == "comment":
            task_id = parts[-2]
            if task_id not in tasks:
                return httpx.Response(404, json={"err": "Task not found"})
            if request.method == "POST":
                posted.append((task_id, json.loads(request.content)))
                return httpx.Response(200, json={"id": f"c{len(posted)}", "hist_id": "h1"})
            return httpx.Response(200, json={"comments": []})
        task = tasks.get(parts[-1])
        if task is None:
            return httpx.Response(404, json={"err": "Task not found", "ECODE": "ITEM_013"})
        return httpx.Response(200, json=task)

    cu = ClickUpClient(api_key="pk_test", base_url="https://clickup.test/api/v2",
                       transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_clickup_client] = lambda: cu
    return SimpleNamespace(client=cu, tasks=tasks, posted=posted)


@pytest.fixture
def make_task():
    return _make_task
