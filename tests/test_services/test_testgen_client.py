"""Tests for the test-generation backend client."""

import httpx
import pytest

from app.core.errors import UpstreamServiceError
from app.services.testgen_client import TestGenClient, export_filename

pytestmark = pytest.mark.asyncio


def make_client(handler) -> TestGenClient:
    return TestGenClient("http://testgen.test/", transport=httpx.MockTransport(handler))


class TestExportFilename:
    def test_known_formats(self):
        assert export_filename("s1", "pytest") == "s1.py"
        assert export_filename("s1", "feature") == "s1.feature"

    def test_unknown_format_used_as_extension(self):
        assert export_filename("s1", "xml") == "s1.xml"


class TestTestGenClient:
    async def test_generate_posts_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"suite_id": "abc", "total_cases": 4})

        suite = await make_client(handler).generate({"user_story": "Login"})

        assert suite["suite_id"] == "abc"
        assert seen["url"] == "http://testgen.test/tests/generate"

    async def test_run_passes_repo_and_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"run_id": 9, "status": "queued"})

        data = await make_client(handler).trigger_run("abc", "acme/shop", "tok")

        assert data["run_id"] == 9
        assert seen["path"] == "/tests/abc/run"
        assert seen["params"] == {"repo": "acme/shop", "token": "tok"}

    async def test_run_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/tests/runs/9/status"
            return httpx.Response(200, json={"run_id": 9, "status": "completed"})

        data = await make_client(handler).run_status("9", "acme/shop", "tok")

        assert data["status"] == "completed"

    async def test_list_suites_ignores_non_list(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        assert await make_client(handler).list_suites("proj-1") == []

    async def test_export_returns_bytes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"Feature: Login")

        assert await make_client(handler).export_suite("abc", "feature") == b"Feature: Login"

    async def test_error_uses_upstream_detail(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"detail": "user_story is required"})

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_client(handler).generate({})

        assert exc_info.value.message == "user_story is required"
        assert exc_info.value.status_code == 502

    async def test_error_without_detail(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_client(handler).delete_suite("abc")

        assert exc_info.value.message == "Suite deletion failed (500)"

    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_client(handler).get_suite("abc")

        assert "connection refused" in exc_info.value.message

    async def test_invalid_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_client(handler).generate({"user_story": "Login"})

        assert exc_info.value.message == "Generation returned invalid JSON"

    async def test_non_object_run_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["completed"])

        with pytest.raises(UpstreamServiceError) as exc_info:
            await make_client(handler).run_status("9", "acme/shop", "tok")

        assert exc_info.value.message == "Run status returned an unexpected response"
