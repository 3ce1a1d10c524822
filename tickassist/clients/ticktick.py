"""TickTick Open API (v1) client."""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from tickassist.errors import TickTickAPIError
from tickassist.models.ticktick import Project, ProjectData, Task
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)

OPEN_API_URL = "https://api.ticktick.com/open/v1"


class TickTickService(Protocol):
    """Interface for the TickTick open API used by the base tool catalog.

    Every call takes the OAuth access token and raises TickTickAPIError on a
    non-success response.
    """

    async def get_projects(self, token: str) -> list[Project]: ...

    async def get_project_data(self, token: str, project_id: str) -> ProjectData: ...

    async def get_task(self, token: str, project_id: str, task_id: str) -> Task: ...

    async def create_project(self, token: str, project: dict[str, Any]) -> Project: ...

    async def update_project(self, token: str, project_id: str, updates: dict[str, Any]) -> Project: ...

    async def delete_project(self, token: str, project_id: str) -> None: ...

    async def create_task(self, token: str, task: dict[str, Any]) -> Task: ...

    async def update_task(self, token: str, task_id: str, updates: dict[str, Any]) -> Task: ...

    async def delete_task(self, token: str, project_id: str, task_id: str) -> None: ...

    async def complete_task(self, token: str, project_id: str, task_id: str) -> None: ...


@dataclass
class TickTickConfig:
    """Configuration for the TickTick API clients."""

    base_url: str | None = None
    timeout: float = 30.0


class TickTickHTTPClient:
    """Shared request handling for the TickTick HTTP APIs."""

    default_base_url: str = OPEN_API_URL
    proxy_path: str = "/api/ticktick"

    def __init__(self, config: TickTickConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the client.

        Args:
            config: Client configuration; base_url defaults to the public endpoint
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or TickTickConfig()
        self.base_url = (self.config.base_url or self.default_base_url).rstrip("/")
        self.client = httpx.AsyncClient(timeout=self.config.timeout, transport=transport)

    @classmethod
    def for_proxy(cls, proxy_url: str | None, timeout: float = 30.0, **kwargs: Any):
        """Build a client that goes through the relay when one is configured."""
        base_url = f"{proxy_url.rstrip('/')}{cls.proxy_path}" if proxy_url else None
        return cls(TickTickConfig(base_url=base_url, timeout=timeout), **kwargs)

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        action: str,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url}")

        try:
            response = await self.client.request(
                method,
                url,
                headers={"Content-Type": "application/json", **self._auth_headers(token)},
                json=json,
                params=params,
            )
        except httpx.HTTPError as e:
            raise TickTickAPIError(f"Failed to {action}: {e}") from e

        if not response.is_success:
            raise TickTickAPIError(f"Failed to {action}: {response.status_code}", response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TickTickAPIError(f"Invalid JSON response: {response.text[:200]}") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self.client.aclose()


class TickTickClient(TickTickHTTPClient):
    """Client for the TickTick open API, authenticated with an OAuth token."""

    async def get_projects(self, token: str) -> list[Project]:
        data = await self._request("GET", "project", token, "fetch projects")
        return [Project.model_validate(item) for item in data or []]

    async def get_project_data(self, token: str, project_id: str) -> ProjectData:
        data = await self._request("GET", f"project/{project_id}/data", token, "fetch project data")
        return ProjectData.model_validate(data)

    async def get_task(self, token: str, project_id: str, task_id: str) -> Task:
        data = await self._request("GET", f"project/{project_id}/task/{task_id}", token, "fetch task")
        return Task.model_validate(data)

    async def create_project(self, token: str, project: dict[str, Any]) -> Project:
        data = await self._request("POST", "project", token, "create project", json=project)
        return Project.model_validate(data)

    async def update_project(self, token: str, project_id: str, updates: dict[str, Any]) -> Project:
        data = await self._request("POST", f"project/{project_id}", token, "update project", json=updates)
        return Project.model_validate(data)

    async def delete_project(self, token: str, project_id: str) -> None:
        await self._request("DELETE", f"project/{project_id}", token, "delete project")

    async def create_task(self, token: str, task: dict[str, Any]) -> Task:
        data = await self._request("POST", "task", token, "create task", json=task)
        return Task.model_validate(data)

    async def update_task(self, token: str, task_id: str, updates: dict[str, Any]) -> Task:
        data = await self._request("POST", f"task/{task_id}", token, "update task", json={"id": task_id, **updates})
        return Task.model_validate(data)

    async def delete_task(self, token: str, project_id: str, task_id: str) -> None:
        await self._request("DELETE", f"task/{project_id}/{task_id}", token, "delete task")

    async def complete_task(self, token: str, project_id: str, task_id: str) -> None:
        await self._request("POST", f"project/{project_id}/task/{task_id}/complete", token, "complete task")
