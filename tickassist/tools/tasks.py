"""Task and flag tools for the base (v1) catalog."""

from typing import Any

from tickassist.clients.ticktick import TickTickService
from tickassist.errors import TickTickAPIError
from tickassist.models.llm import Credentials, ToolDefinition
from tickassist.tools.base import FLAGGED_TAG, Tool, compact, object_schema, pick_present
from tickassist.tools.cache import TTLCache
from tickassist.tools.projects import cached_projects
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)

TASK_FIELDS = (
    "title",
    "content",
    "desc",
    "priority",
    "dueDate",
    "startDate",
    "isAllDay",
    "timeZone",
    "tags",
    "reminders",
    "repeatFlag",
    "items",
)

TASK_AND_PROJECT = {
    "taskId": {"type": "string", "description": "The task ID"},
    "projectId": {"type": "string", "description": "The project ID"},
}

PRIORITY_DESCRIPTION = "0=none, 1=low, 3=medium, 5=high"
REMINDER_EXAMPLES = '(e.g. "TRIGGER:P0DT9H0M0S" for 9am, "TRIGGER:-PT15M" for 15 min before)'


def checklist_schema(with_id: bool) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    if with_id:
        properties["id"] = {"type": "string", "description": "Subtask ID (omit for new subtasks)"}
    properties["title"] = {"type": "string", "description": "Subtask title"}
    properties["status"] = {"type": "number", "description": "0=unchecked, 1=checked"}
    return {"type": "array", "items": object_schema(properties, required=["title"])}


GET_TASK = ToolDefinition(
    name="get_task",
    description=(
        "Get a single task by project ID and task ID. "
        "Returns full task details including subtasks, reminders, and recurrence."
    ),
    parameters=object_schema(
        {
            "projectId": {"type": "string", "description": "The project ID"},
            "taskId": {"type": "string", "description": "The task ID"},
        },
        required=["projectId", "taskId"],
    ),
)

CREATE_TASK = ToolDefinition(
    name="create_task",
    description="Create a new task in a project.",
    parameters=object_schema(
        {
            "projectId": {"type": "string", "description": "The project ID to create the task in"},
            "title": {"type": "string", "description": "Task title"},
            "content": {"type": "string", "description": "Task description/notes (plain text)"},
            "desc": {"type": "string", "description": "Task description (rich text/markdown)"},
            "priority": {"type": "number", "description": f"Priority: {PRIORITY_DESCRIPTION}"},
            "dueDate": {
                "type": ["string", "null"],
                "description": 'Due date in ISO 8601 format (e.g. "2026-02-20T16:00:00.000+0000")',
            },
            "startDate": {"type": ["string", "null"], "description": "Start date in ISO 8601 format"},
            "isAllDay": {"type": "boolean", "description": "True if the due date is all-day (no specific time)"},
            "timeZone": {"type": "string", "description": 'Timezone (e.g. "Europe/Sofia", "America/New_York")'},
            "tags": {"type": "array", "items": {"type": "string"}, "description": "Tags to assign to the task"},
            "reminders": {
                "type": "array",
                "items": {"type": "string"},
                "description": f"Reminder triggers in iCal format {REMINDER_EXAMPLES}",
            },
            "repeatFlag": {
                "type": "string",
                "description": (
                    'Recurrence rule in iCal RRULE format (e.g. "RRULE:FREQ=DAILY;INTERVAL=1", '
                    '"RRULE:FREQ=WEEKLY;BYDAY=MO,WE,FR")'
                ),
            },
            "items": {**checklist_schema(with_id=False), "description": "Subtask/checklist items"},
        },
        required=["projectId", "title"],
    ),
)

UPDATE_TASK = ToolDefinition(
    name="update_task",
    description=(
        "Update a task: rename, change description, priority, due date, tags, reminders, recurrence, subtasks, etc."
    ),
    parameters=object_schema(
        {
            "taskId": {"type": "string", "description": "The task ID"},
            "projectId": {"type": "string", "description": "The project ID the task currently belongs to"},
            "title": {"type": "string", "description": "New task title"},
            "content": {"type": "string", "description": "New task description (plain text)"},
            "desc": {"type": "string", "description": "New task description (rich text/markdown)"},
            "priority": {"type": "number", "description": f"New priority: {PRIORITY_DESCRIPTION}"},
            "dueDate": {
                "type": ["string", "null"],
                "description": "Due date in ISO 8601 format, or null to remove",
            },
            "startDate": {
                "type": ["string", "null"],
                "description": "Start date in ISO 8601 format, or null to remove",
            },
            "isAllDay": {"type": "boolean", "description": "True if the due date is all-day (no specific time)"},
            "timeZone": {"type": "string", "description": "Timezone for the due date"},
            "tags": {"type": "array", "items": {"type": "string"}, "description": "Replace all tags on the task"},
            "reminders": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Replace all reminders (iCal TRIGGER format), or empty array to remove all",
            },
            "repeatFlag": {
                "type": ["string", "null"],
                "description": "Recurrence rule in iCal RRULE format, or null to remove recurrence",
            },
            "items": {**checklist_schema(with_id=True), "description": "Replace all subtask/checklist items"},
        },
        required=["taskId", "projectId"],
    ),
)

COMPLETE_TASK = ToolDefinition(
    name="complete_task",
    description="Mark a task as completed.",
    parameters=object_schema(TASK_AND_PROJECT, required=["taskId", "projectId"]),
)

DELETE_TASK = ToolDefinition(
    name="delete_task",
    description="Delete a task. This is destructive and cannot be undone. The user will be asked to confirm.",
    parameters=object_schema(
        {**TASK_AND_PROJECT, "title": {"type": "string", "description": "Task title (for confirmation display)"}},
        required=["taskId", "projectId"],
    ),
    requires_confirmation=True,
)

MOVE_TASK = ToolDefinition(
    name="move_task",
    description="Move a task from one project to another.",
    parameters=object_schema(
        {
            "taskId": {"type": "string", "description": "The task ID to move"},
            "fromProjectId": {"type": "string", "description": "The project ID the task currently belongs to"},
            "toProjectId": {"type": "string", "description": "The target project ID to move the task to"},
        },
        required=["taskId", "fromProjectId", "toProjectId"],
    ),
)

FLAG_TASK = ToolDefinition(
    name="flag_task",
    description=(
        f'Flag a task by adding the "{FLAGGED_TAG}" tag. Flagged tasks can be listed with get_flagged_tasks.'
    ),
    parameters=object_schema(TASK_AND_PROJECT, required=["taskId", "projectId"]),
)

UNFLAG_TASK = ToolDefinition(
    name="unflag_task",
    description=f'Unflag a task by removing the "{FLAGGED_TAG}" tag.',
    parameters=object_schema(TASK_AND_PROJECT, required=["taskId", "projectId"]),
)

GET_FLAGGED_TASKS = ToolDefinition(
    name="get_flagged_tasks",
    description=f'Get all tasks across all projects that have the "{FLAGGED_TAG}" tag.',
    parameters=object_schema(),
)


def create_task_tools(client: TickTickService, cache: TTLCache) -> list[Tool]:
    """Create the task and flag tools bound to a TickTick client."""

    async def current_tags(token: str, project_id: str, task_id: str) -> list[str]:
        data = await client.get_project_data(token, project_id)
        task = next((t for t in data.tasks if t.id == task_id), None)
        return list(task.tags or []) if task else []

    async def get_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        task = await client.get_task(credentials.access_token, arguments["projectId"], arguments["taskId"])
        return task.to_wire()

    async def create_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        payload = {"projectId": arguments["projectId"], **pick_present(arguments, TASK_FIELDS)}
        task = await client.create_task(credentials.access_token, payload)
        return task.to_wire()

    async def update_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        updates = {"projectId": arguments["projectId"], **pick_present(arguments, TASK_FIELDS)}
        task = await client.update_task(credentials.access_token, arguments["taskId"], updates)
        return task.to_wire()

    async def complete_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.complete_task(credentials.access_token, arguments["projectId"], arguments["taskId"])
        return {"success": True}

    async def delete_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.delete_task(credentials.access_token, arguments["projectId"], arguments["taskId"])
        return {"success": True}

    async def move_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        task = await client.update_task(
            credentials.access_token, arguments["taskId"], {"projectId": arguments["toProjectId"]}
        )
        return task.to_wire()

    async def flag_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        token = credentials.access_token
        tags = await current_tags(token, arguments["projectId"], arguments["taskId"])
        if FLAGGED_TAG in tags:
            return {"message": "Task is already flagged"}

        task = await client.update_task(
            token, arguments["taskId"], {"tags": [*tags, FLAGGED_TAG], "projectId": arguments["projectId"]}
        )
        return task.to_wire()

    async def unflag_task(arguments: dict[str, Any], credentials: Credentials) -> Any:
        token = credentials.access_token
        tags = await current_tags(token, arguments["projectId"], arguments["taskId"])
        task = await client.update_task(
            token,
            arguments["taskId"],
            {"tags": [tag for tag in tags if tag != FLAGGED_TAG], "projectId": arguments["projectId"]},
        )
        return task.to_wire()

    async def get_flagged_tasks(arguments: dict[str, Any], credentials: Credentials) -> Any:
        token = credentials.access_token
        flagged: list[dict[str, Any]] = []
        for project in await cached_projects(client, cache, token):
            try:
                data = await client.get_project_data(token, project.id)
            except TickTickAPIError as e:
                logger.warning(f"Skipping project {project.id} while collecting flagged tasks: {e}")
                continue

            for task in data.tasks:
                if FLAGGED_TAG in (task.tags or []) and task.status == 0:
                    flagged.append(
                        compact(
                            {
                                "id": task.id,
                                "title": task.title,
                                "projectId": task.project_id,
                                "projectName": project.name,
                                "priority": task.priority,
                                "dueDate": task.due_date,
                            }
                        )
                    )
        return flagged

    return [
        Tool(GET_TASK, get_task),
        Tool(CREATE_TASK, create_task, mutates=True),
        Tool(UPDATE_TASK, update_task, mutates=True),
        Tool(COMPLETE_TASK, complete_task, mutates=True),
        Tool(DELETE_TASK, delete_task, mutates=True),
        Tool(MOVE_TASK, move_task, mutates=True),
        Tool(FLAG_TASK, flag_task, mutates=True),
        Tool(UNFLAG_TASK, unflag_task, mutates=True),
        Tool(GET_FLAGGED_TASKS, get_flagged_tasks),
    ]
