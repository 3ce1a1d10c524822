"""Shared fixtures."""

import pytest

from tickassist.models.llm import Credentials
from tickassist.models.ticktick import BatchCheck, Project, SyncTaskBean, Tag, Task
from tickassist.tools.cache import TTLCache
from tickassist.tools.registry import ToolCatalog
from tests.fakes import FakeClock, FakeTickTick, FakeTickTickV2


@pytest.fixture
def ticktick():
    """Open API fake with two projects and a few tasks."""
    service = FakeTickTick()
    service.add_project("inbox", "Inbox")
    service.add_project("work", "Work")
    service.add_task("t1", "inbox", "Buy milk", tags=["errand"])
    service.add_task("t2", "work", "Write report", tags=["flagged"], priority=5)
    service.add_task("t3", "work", "Old task", tags=["flagged"], status=2)
    return service


@pytest.fixture
def ticktick_v2():
    """Session API fake with a small account snapshot."""
    batch = BatchCheck(
        sync_task_bean=SyncTaskBean(
            update=[
                Task(id="a", project_id="inbox", title="Buy milk", tags=["Errand"], due_date="2026-02-20T09:00:00+00:00"),
                Task(id="b", project_id="work", title="Write report", priority=5, due_date="2026-02-25T16:00:00+00:00"),
                Task(id="c", project_id="work", title="Ship release", status=2),
                Task(id="d", project_id="gone", title="Orphan task"),
            ]
        ),
        project_profiles=[Project(id="inbox", name="Inbox"), Project(id="work", name="Work")],
        tags=[Tag(name="errand", label="Errand", color="#ff0000")],
    )
    return FakeTickTickV2(batch)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog(ticktick, ticktick_v2, clock):
    return ToolCatalog(ticktick, ticktick_v2, cache=TTLCache(ttl=30.0, clock=clock))


@pytest.fixture
def credentials():
    return Credentials(access_token="oauth-token")


@pytest.fixture
def v2_credentials():
    return Credentials(access_token="oauth-token", session_token="session-token")
