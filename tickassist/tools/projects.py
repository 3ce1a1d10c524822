"""Project tools for the base (v1) catalog."""

from typing import Any

from tickassist.clients.ticktick import TickTickService
from tickassist.models.llm import Credentials, ToolDefinition
from tickassist.models.ticktick import Project, Task
from tickassist.tools.base import Tool, compact, object_schema, pick_present
from tickassist.tools.cache import TTLCache

VIEW_MODE_DESCRIPTION = '"list", "kanban", or "timeline"'


async def cached_projects(client: TickTickService, cache: TTLCache, token: str) -> list[Project]:
    """Project list for ``token``, served from the read cache when fresh."""
    return await cache.get_or_load(("projects", token), lambda: client.get_projects(token))


LIST_PROJECTS = ToolDefinition(
    name="list_projects",
    description="Get all TickTick projects/lists. Returns project names and IDs.",
    parameters=object_schema(),
)

GET_PROJECT_TASKS = ToolDefinition(
    name="get_project_tasks",
    description="Get all tasks in a specific project by project ID.",
    parameters=object_schema(
        {"projectId": {"type": "string", "description": "The project ID to get tasks for"}},
        required=["projectId"],
    ),
)

CREATE_PROJECT = ToolDefinition(
    name="create_project",
    description="Create a new project/list.",
    parameters=object_schema(
        {
            "name": {"type": "string", "description": "Project name"},
            "color": {"type": "string", "description": 'Color hex code (e.g. "#ff6161")'},
            "viewMode": {"type": "string", "description": f"View mode: {VIEW_MODE_DESCRIPTION}"},
            "kind": {"type": "string", "description": '"TASK" for task list, "NOTE" for note list'},
        },
        required=["name"],
    ),
)

UPDATE_PROJECT = ToolDefinition(
    name="update_project",
    description="Update a project: rename, change color, view mode, etc.",
    parameters=object_schema(
        {
            "projectId": {"type": "string", "description": "The project ID to update"},
            "name": {"type": "string", "description": "New project name"},
            "color": {"type": "string", "description": "New color hex code"},
            "viewMode": {"type": "string", "description": f"New view mode: {VIEW_MODE_DESCRIPTION}"},
        },
        required=["projectId"],
    ),
)

DELETE_PROJECT = ToolDefinition(
    name="delete_project",
    description=(
        "Delete a project and all its tasks. This is destructive and cannot be undone. "
        "The user will be asked to confirm."
    ),
    parameters=object_schema(
        {
            "projectId": {"type": "string", "description": "The project ID to delete"},
            "name": {"type": "string", "description": "Project name (for confirmation display)"},
        },
        required=["projectId"],
    ),
    requires_confirmation=True,
)


def task_summary(task: Task) -> dict[str, Any]:
    """Fields of a task shown when listing a project."""
    return compact(
        {
            "id": task.id,
            "title": task.title,
            "content": task.content,
            "status": task.status,
            "priority": task.priority,
            "tags": task.tags,
            "dueDate": task.due_date,
            "startDate": task.start_date,
            "reminders": task.reminders,
            "repeatFlag": task.repeat_flag,
            "items": [item.to_wire() for item in task.items] if task.items is not None else None,
        }
    )


def create_project_tools(client: TickTickService, cache: TTLCache) -> list[Tool]:
    """Create the project tools bound to a TickTick client."""

    async def list_projects(arguments: dict[str, Any], credentials: Credentials) -> Any:
        projects = await cached_projects(client, cache, credentials.access_token)
        return [compact({"id": p.id, "name": p.name, "color": p.color, "kind": p.kind}) for p in projects]

    async def get_project_tasks(arguments: dict[str, Any], credentials: Credentials) -> Any:
        data = await client.get_project_data(credentials.access_token, arguments["projectId"])
        return [task_summary(task) for task in data.tasks]

    async def create_project(arguments: dict[str, Any], credentials: Credentials) -> Any:
        payload = compact(pick_present(arguments, ("name", "color", "viewMode", "kind")))
        project = await client.create_project(credentials.access_token, payload)
        return project.to_wire()

    async def update_project(arguments: dict[str, Any], credentials: Credentials) -> Any:
        updates = pick_present(arguments, ("name", "color", "viewMode"))
        project = await client.update_project(credentials.access_token, arguments["projectId"], updates)
        return project.to_wire()

    async def delete_project(arguments: dict[str, Any], credentials: Credentials) -> Any:
        await client.delete_project(credentials.access_token, arguments["projectId"])
        return {"success": True}

    return [
        Tool(LIST_PROJECTS, list_projects),
        Tool(GET_PROJECT_TASKS, get_project_tasks),
        Tool(CREATE_PROJECT, create_project, mutates=True),
        Tool(UPDATE_PROJECT, update_project, mutates=True),
        Tool(DELETE_PROJECT, delete_project, mutates=True),
    ]
