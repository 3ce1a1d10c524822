"""TickTick domain models shared by the v1 and v2 API clients."""

from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class TickTickModel(BaseModel):
    """Base model mapping snake_case fields to TickTick's camelCase JSON.

    Unknown fields are kept so nothing the API returns is lost when a model
    is serialized back for the LLM.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the API's field names, dropping unset values."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Project(TickTickModel):
    """A TickTick project (list)."""

    id: str
    name: str
    color: str | None = None
    sort_order: int | None = None
    view_mode: str | None = None
    kind: str | None = None
    closed: bool | None = None
    group_id: str | None = None


class ChecklistItem(TickTickModel):
    """A subtask/checklist entry inside a task."""

    id: str | None = None
    title: str
    status: int = 0  # 0=unchecked, 1=checked
    sort_order: int | None = None


class Task(TickTickModel):
    """A TickTick task as returned by either API version."""

    id: str
    project_id: str
    title: str = ""
    content: str | None = None
    desc: str | None = None
    status: int = 0  # 0=open, 2=completed
    priority: int = 0  # 0=none, 1=low, 3=medium, 5=high
    tags: list[str] | None = None
    due_date: str | None = None
    start_date: str | None = None
    is_all_day: bool | None = None
    time_zone: str | None = None
    reminders: list[str] | None = None
    repeat_flag: str | None = None
    items: list[ChecklistItem] | None = None
    parent_id: str | None = None
    child_ids: list[str] | None = None
    completed_time: str | None = None
    sort_order: int | None = None


class ProjectData(TickTickModel):
    """A project together with its open tasks."""

    project: Project | None = None
    tasks: list[Task] = Field(default_factory=list)


class Tag(TickTickModel):
    """A tag from the v2 API."""

    name: str
    label: str | None = None
    color: str | None = None
    sort_order: int | None = None
    sort_type: str | None = None


class SyncTaskBean(TickTickModel):
    """Task section of a batch check response."""

    update: list[Task] = Field(default_factory=list)


class BatchCheck(TickTickModel):
    """Full account snapshot from the v2 batch check endpoint."""

    sync_task_bean: SyncTaskBean = Field(default_factory=SyncTaskBean)
    project_profiles: list[Project] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    inbox_id: str | None = None

    @property
    def tasks(self) -> list[Task]:
        """All tasks included in the snapshot."""
        return self.sync_task_bean.update
