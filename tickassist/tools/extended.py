"""Extended (v2) tools backed by the TickTick session API."""

from datetime import UTC, datetime
from typing import Any

from tickassist.clients.ticktick_v2 import TickTickV2Service
from tickassist.models.llm import Credentials, ToolDefinition
from tickassist.models.ticktick import BatchCheck, Tag
from tickassist.tools.base import Tool, compact, object_schema
from tickassist.tools.cache import TTLCache

STATUS_OPEN = 0
STATUS_COMPLETED = 2


def parse_date(value: str) -> datetime:
    """Parse a TickTick/ISO-8601 date; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Invalid date: {value}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def tag_summary(tag: Tag) -> dict[str, Any]:
    return compact({"name": tag.name, "label": tag.label, "color": tag.color})


FILTER_TASKS = ToolDefinition(
    name="filter_tasks",
    description=(
        "Filter tasks across ALL projects. Supports filtering by status, project, tag, priority, and date range. "
        "Much more powerful than get_project_tasks since it works cross-project."
    ),
    parameters=object_schema(
        {
            "status": {
                "type": "string",
                "description": 'Filter by status: "open", "completed", or "all". Default: "open"',
            },
            "projectId": {"type": "string", "description": "Filter to a specific project ID"},
            "tag": {"type": "string", "description": "Filter by tag name"},
            "priority": {"type": "number", "description": "Filter by priority: 0=none, 1=low, 3=medium, 5=high"},
            "dueBefore": {"type": "string", "description": "Filter tasks due before this ISO date"},
            "dueAfter": {"type": "string", "description": "Filter tasks due after this ISO date"},
            "search": {"type": "string", "description": "Search in task title (case-insensitive)"},
        }
    ),
)

GET_COMPLETED_TASKS = ToolDefinition(
    name="get_completed_tasks",
    description=(
        "Get completed tasks across all projects within a date range. "
        "Use this when users ask about finished/done tasks."
    ),
    parameters=object_schema(
        {
            "from": {
                "type": "string",
                "description": 'Start date in ISO 8601 format (e.g. "2026-02-01T00:00:00.000+0000")',
            },
            "to": {
                "type": "string",
                "description": 'End date in ISO 8601 format (e.g. "2026-02-17T23:59:59.000+0000")',
            },
        },
        required=["from", "to"],
    ),
)

MAKE_SUBTASK = ToolDefinition(
    name="make_subtask",
    description=(
        "Make a task a subtask of another task (create parent-child relationship). "
        "Both tasks must be in the same project."
    ),
    parameters=object_schema(
        {
            "taskId": {"type": "string", "description": "The task ID to make a subtask"},
            "parentId": {"type": "string", "description": "The parent task ID"},
            "projectId": {"type": "string", "description": "The project ID both tasks belong to"},
        },
        required=["taskId", "parentId", "projectId"],
    ),
)

GET_ALL_TAGS = ToolDefinition(
    name="get_all_tags",
    description="Get all tags in the user's TickTick account.",
    parameters=object_schema(),
)

CREATE_TAG = ToolDefinition(
    name="create_tag",
    description="Create a new tag.",
    parameters=object_schema(
        {
            "name": {"type": "string", "description": "Tag name"},
            "color": {"type": "string", "description": "Tag color (hex code)"},
        },
        required=["name"],
    ),
)

RENAME_TAG = ToolDefinition(
    name="rename_tag",
    description="Rename an existing tag. All tasks with this tag will be updated.",
    parameters=object_schema(
        {
            "oldName": {"type": "string", "description": "Current tag name"},
            "newName": {"type": "string", "description": "New tag name"},
        },
        required=["oldName", "newName"],
    ),
)

DELETE_TAG = ToolDefinition(
    name="delete_tag",
    description="Delete a tag. The tag will be removed from all tasks.",
    parameters=object_schema({"name": {"type": "string", "description": "Tag name to delete"}}, required=["name"]),
    requires_confirmation=True,
)

MERGE_TAGS = ToolDefinition(
    name="merge_tags",
    description="Merge one tag into another. All tasks with the source tag will get the target tag instead.",
    parameters=object_schema(
        {
            "from": {"type": "string", "description": "Source tag name (will be removed)"},
            "to": {"type": "string", "description": "Target tag name (will be kept)"},
        },
        required=["from", "to"],
    ),
)

BATCH_SYNC = ToolDefinition(
    name="batch_sync",
    description=(
        "Get a full overview of all tasks, projects, and tags. Returns task count, all projects, and all tags. "
        "Useful for getting a big picture view."
    ),
    parameters=object_schema(),
)


def create_extended_tools(client: TickTickV2Service, cache: TTLCache) -> list[Tool]:
    """Create the v2-only tools bound to a session API client.

    Handlers read ``credentials.session_token``; the catalog only routes here
    when one is present.
    """

    async def snapshot(credentials: Credentials) -> BatchCheck:
        token = credentials.session_token
        return await cache.get_or_load(("batch", token), lambda: client.batch_check(token))

    async def filter_tasks(arguments: dict[str, Any], credentials: Credentials) -> Any:
        batch = await snapshot(credentials)
        tasks = batch.tasks

        status = arguments.get("status") or "open"
        if status == "open":
            tasks = [t for t in tasks if t.status == STATUS_OPEN]
        elif status == "completed":
            tasks = [t for t in tasks if t.status == STATUS_COMPLETED]

        if project_id := arguments.get("projectId"):
            tasks = [t for t in tasks if t.project_id == project_id]
        if tag := arguments.get("tag"):
            tasks = [t for t in tasks if any(tg.lower() == tag.lower() for tg in t.tags or [])]
        if arguments.get("priority") is not None:
            tasks = [t for t in tasks if t.priority == arguments["priority"]]
        if due_before := arguments.get("dueBefore"):
            before = parse_date(due_before)
            tasks = [t for t in tasks if t.due_date and parse_date(t.due_date) <= before]
        if due_after := arguments.get("dueAfter"):
            after = parse_date(due_after)
            tasks = [t for t in tasks if t.due_date and parse_date(t.due_date) >= after]
        if search := arguments.get("search"):
            tasks = [t for t in tasks if search.lower() in t.title.lower()]

        project_names = {p.id: p.name for p in batch.project_profiles}
        return [
            compact(
                {
                    "id": t.id,
                    "title": t.title,
                    "projectId": t.project_id,
                    "projectName": project_names.get(t.project_id, "Unknown"),
                    "status": t.status,
                    "priority": t.priority,
                    "tags": t.tags,
                    "dueDate": t.due_date,
                    "startDate": t.start_date,
                    "parentId": t.parent_id,
                }
            )
            for t in tasks
        ]

    async def get_completed_tasks(arguments: dict[str, Any], credentials: Credentials) -> Any:
        tasks = await client.get_completed_tasks(credentials.session_token, arguments["from"], arguments["to"])
        return [
            compact(
                {
                    "id": t.id,
                    "title": t.title,
                    "projectId": t.project_id,
                    "priority": t.priority,
                    "tags": t.tags,
                    "completedTime": t.completed_time,
                    "dueDate": t.due_date,
                }
            )
            for t in tasks
        ]

    async def make_subtask(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.make_subtask(
            credentials.session_token, arguments["taskId"], arguments["parentId"], arguments["projectId"]
        )
        return {"success": True}

    async def get_all_tags(arguments: dict[str, Any], credentials: Credentials) -> Any:
        batch = await snapshot(credentials)
        return [tag_summary(tag) for tag in batch.tags]

    async def create_tag(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.create_tag(credentials.session_token, arguments["name"], arguments.get("color"))
        return {"success": True, "name": arguments["name"]}

    async def rename_tag(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.rename_tag(credentials.session_token, arguments["oldName"], arguments["newName"])
        return {"success": True}

    async def delete_tag(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.delete_tag(credentials.session_token, arguments["name"])
        return {"success": True}

    async def merge_tags(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.merge_tags(credentials.session_token, arguments["from"], arguments["to"])
        return {"success": True}

    async def batch_sync(arguments: dict[str, Any], credentials: Credentials) -> Any:
        batch = await snapshot(credentials)
        open_tasks = [t for t in batch.tasks if t.status == STATUS_OPEN]
        return {
            "totalOpenTasks": len(open_tasks),
            "projects": [
                {
                    "id": p.id,
                    "name": p.name,
                    "taskCount": sum(1 for t in open_tasks if t.project_id == p.id),
                }
                for p in batch.project_profiles
            ],
            "tags": [tag_summary(tag) for tag in batch.tags],
        }

    return [
        Tool(FILTER_TASKS, filter_tasks),
        Tool(GET_COMPLETED_TASKS, get_completed_tasks),
        Tool(MAKE_SUBTASK, make_subtask, mutates=True),
        Tool(GET_ALL_TAGS, get_all_tags),
        Tool(CREATE_TAG, create_tag, mutates=True),
        Tool(RENAME_TAG, rename_tag, mutates=True),
        Tool(DELETE_TAG, delete_tag, mutates=True),
        Tool(MERGE_TAGS, merge_tags, mutates=True),
        Tool(BATCH_SYNC, batch_sync),
    ]
