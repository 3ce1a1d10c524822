"""TickTick internal (v2) API client, authenticated with a session token."""

from typing import Any, Protocol

import httpx

from tickassist.clients.ticktick import TickTickHTTPClient
from tickassist.errors import TickTickAPIError
from tickassist.models.ticktick import BatchCheck, Task

V2_API_URL = "https://api.ticktick.com/api/v2"


class TickTickV2Service(Protocol):
    """Interface for the v2 API used by the extended tool catalog."""

    async def batch_check(self, token: str) -> BatchCheck: ...

    async def get_completed_tasks(self, token: str, from_date: str, to_date: str) -> list[Task]: ...

    async def make_subtask(self, token: str, task_id: str, parent_id: str, project_id: str) -> None: ...

    async def create_tag(self, token: str, name: str, color: str | None = None) -> None: ...

    async def rename_tag(self, token: str, old_name: str, new_name: str) -> None: ...

    async def delete_tag(self, token: str, name: str) -> None: ...

    async def merge_tags(self, token: str, from_tag: str, to_tag: str) -> None: ...


class TickTickV2Client(TickTickHTTPClient):
    """Client for the v2 API behind the TickTick web app."""

    default_base_url = V2_API_URL
    proxy_path = "/api/ticktick-v2"

    def _auth_headers(self, token: str) -> dict[str, str]:
        # The relay reads the header; the public endpoint reads the cookie
        return {"X-Ticktick-Session": token, "Cookie": f"t={token}"}

    async def sign_in(self, username: str, password: str) -> str:
        """Exchange account credentials for a session token."""
        url = f"{self.base_url}/user/signon"
        try:
            response = await self.client.post(
                url,
                params={"wc": "true", "remember": "true"},
                json={"username": username, "password": password},
            )
        except httpx.HTTPError as e:
            raise TickTickAPIError(f"Failed to sign in: {e}") from e

        if not response.is_success:
            raise TickTickAPIError(f"Failed to sign in: {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise TickTickAPIError(f"Invalid JSON response: {response.text[:200]}") from e

        token = data.get("_sessionToken") or data.get("token") if isinstance(data, dict) else None
        if not token:
            raise TickTickAPIError("Sign-in response did not include a session token")
        return token

    async def batch_check(self, token: str) -> BatchCheck:
        data = await self._request("GET", "batch/check/0", token, "sync account")
        return BatchCheck.model_validate(data)

    async def get_completed_tasks(self, token: str, from_date: str, to_date: str) -> list[Task]:
        data = await self._request(
            "GET",
            "project/all/completedInAll/",
            token,
            "fetch completed tasks",
            params={"from": from_date, "to": to_date, "limit": "999"},
        )
        return [Task.model_validate(item) for item in data or []]

    async def make_subtask(self, token: str, task_id: str, parent_id: str, project_id: str) -> None:
        await self._request(
            "POST",
            "batch/taskParent",
            token,
            "set task parent",
            json=[{"taskId": task_id, "parentId": parent_id, "projectId": project_id}],
        )

    async def create_tag(self, token: str, name: str, color: str | None = None) -> None:
        payload: dict[str, Any] = {"label": name, "name": name.lower()}
        if color is not None:
            payload["color"] = color
        await self._request("POST", "tag", token, "create tag", json=payload)

    async def rename_tag(self, token: str, old_name: str, new_name: str) -> None:
        await self._request("PUT", "tag/rename", token, "rename tag", json={"name": old_name, "newName": new_name})

    async def delete_tag(self, token: str, name: str) -> None:
        await self._request("DELETE", "tag", token, "delete tag", json={"name": name})

    async def merge_tags(self, token: str, from_tag: str, to_tag: str) -> None:
        await self._request("PUT", "tag/merge", token, "merge tags", json={"from": from_tag, "to": to_tag})
