"""
Client for the external AI test-generation backend.

Endpoints (all under /tests):
    POST   /generate                        generate a suite
    GET    /{suite_id}                      fetch a suite
    GET    /?project_id=                    list suites
    GET    /{suite_id}/export/{format}      export as bytes
    DELETE /{suite_id}                      delete a suite
    POST   /{suite_id}/run?repo=&token=     trigger a GitHub Actions run
    GET    /runs/{run_id}/status?repo=&token=
"""

from typing import Any

import httpx

from app.config import Settings, get_settings
from app.core.errors import UpstreamServiceError
from app.core.logging import get_logger

logger = get_logger(__name__)

# Export format -> downloaded file extension
EXPORT_EXTENSIONS = {"json": "json", "feature": "feature", "csv": "csv", "pytest": "py"}


def export_filename(suite_id: str, export_format: str) -> str:
    return f"{suite_id}.{EXPORT_EXTENSIONS.get(export_format, export_format)}"


def upstream_error(response: httpx.Response, action: str) -> UpstreamServiceError:
    """Build an error carrying the upstream `detail` message when there is one."""
    detail = None
    try:
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("detail")
    except ValueError:
        pass

    message = str(detail) if detail else f"{action} failed ({response.status_code})"
    return UpstreamServiceError(message)


class TestGenClient:
    """Thin async wrapper over the test-generation HTTP API."""

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "TestGenClient":
        return cls(settings.testgen_backend_url, timeout=settings.testgen_timeout_seconds)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/tests",
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.bind(action=action, error=str(e)).error("testgen_request_error")
            raise UpstreamServiceError(f"{action} failed: {e}") from e

        if resp.status_code >= 400:
            logger.bind(action=action, status=resp.status_code).warning("testgen_request_failed")
            raise upstream_error(resp, action)
        return resp

    async def _request_json(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        """Request and decode a JSON body; an undecodable body is an upstream error."""
        resp = await self._request(method, path, action, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            logger.bind(action=action, status=resp.status_code).warning("testgen_invalid_json")
            raise UpstreamServiceError(f"{action} returned invalid JSON") from e

    async def _request_object(
        self,
        method: str,
        path: str,
        action: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        data = await self._request_json(method, path, action, **kwargs)
        if not isinstance(data, dict):
            body_type = type(data).__name__
            logger.bind(action=action, body_type=body_type).warning("testgen_unexpected_body")
            raise UpstreamServiceError(f"{action} returned an unexpected response")
        return data

    async def generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Generate a suite from a user story and acceptance criteria."""
        data = await self._request_object("POST", "/generate", "Generation", json=payload)
        logger.bind(
            suite_id=data.get("suite_id"),
            total_cases=data.get("total_cases"),
        ).info("testgen_suite_generated")
        return data

    async def get_suite(self, suite_id: str) -> dict[str, Any]:
        return await self._request_object("GET", f"/{suite_id}", "Suite lookup")

    async def list_suites(self, project_id: str | None = None) -> list[dict[str, Any]]:
        params = {"project_id": project_id} if project_id else {}
        data = await self._request_json("GET", "/", "Suite listing", params=params)
        return data if isinstance(data, list) else []

    async def export_suite(self, suite_id: str, export_format: str) -> bytes:
        resp = await self._request("GET", f"/{suite_id}/export/{export_format}", "Export")
        return resp.content

    async def delete_suite(self, suite_id: str) -> None:
        await self._request("DELETE", f"/{suite_id}", "Suite deletion")
        logger.bind(suite_id=suite_id).info("testgen_suite_deleted")

    async def trigger_run(self, suite_id: str, repo: str, token: str) -> dict[str, Any]:
        """Start a run of a suite in the given GitHub repository."""
        data = await self._request_object(
            "POST", f"/{suite_id}/run", "Run trigger", params={"repo": repo, "token": token}
        )
        logger.bind(suite_id=suite_id, repo=repo, run_id=data.get("run_id")).info("testgen_run_triggered")
        return data

    async def run_status(self, run_id: str, repo: str, token: str) -> dict[str, Any]:
        return await self._request_object(
            "GET", f"/runs/{run_id}/status", "Run status", params={"repo": repo, "token": token}
        )


def get_testgen_client() -> TestGenClient:
    """Dependency that provides the test-generation client."""
    return TestGenClient.from_settings(get_settings())
