"""Tests for the AI sprint analyzer."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import AnalysisConfig
from app.core.errors import UpstreamServiceError
from app.models.task import Task, TaskStatus
from app.planning.analyzer import (
    INDUSTRY_DEFAULTS,
    analyze_sprint,
    build_analysis_prompt,
    extract_json,
    overall_risk_of,
)

pytestmark = pytest.mark.asyncio


def make_task(name: str, module: str = "API", velocity: int = 3, bugs: int = 0, status=TaskStatus.TODO):
    return Task(
        id=f"id-{name}",
        project_id="proj-1",
        name=name,
        module=module,
        velocity=velocity,
        bugs=bugs,
        status=status,
        due_date=None,
    )


def mock_client_returning(content: str | None, side_effect: Exception | None = None):
    mock_client = AsyncMock()
    if side_effect:
        mock_client.chat.completions.create = AsyncMock(side_effect=side_effect)
        return mock_client

    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = content
    mock_response.usage = MagicMock()
    mock_response.usage.prompt_tokens = 100
    mock_response.usage.completion_tokens = 50
    mock_response.usage.total_tokens = 150
    mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
    return mock_client


class TestBuildAnalysisPrompt:
    """Tests for prompt construction."""

    def test_includes_overview_and_modules(self):
        tasks = [
            make_task("Login", module="Auth", velocity=5, bugs=2),
            make_task("Search", module="API", velocity=3, status=TaskStatus.DONE),
        ]

        prompt = build_analysis_prompt(tasks, [])

        assert "Total Features: 2" in prompt
        assert "Total Velocity: 8 points" in prompt
        assert "Completed: 3 points (38%)" in prompt
        assert "Auth: 1 features, 5 velocity points, 2 bugs" in prompt
        assert "1. Login" in prompt
        assert "ID: id-Login" in prompt

    def test_uses_industry_defaults_without_history(self):
        prompt = build_analysis_prompt([make_task("Login")], [])

        assert INDUSTRY_DEFAULTS in prompt

    def test_lists_completed_history(self):
        done = make_task("Signup", status=TaskStatus.DONE)

        prompt = build_analysis_prompt([make_task("Login"), done], [done])

        assert "Found 1 completed tasks" in prompt
        assert INDUSTRY_DEFAULTS not in prompt

    def test_limits_listed_tasks(self):
        tasks = [make_task(f"T{i}") for i in range(5)]

        prompt = build_analysis_prompt(tasks, [], max_tasks=2)

        assert "2. T1" in prompt
        assert "3. T2" not in prompt


class TestExtractJson:
    """Tests for JSON extraction from model output."""

    def test_bare_object(self):
        assert extract_json('{"summary": {"overallRisk": 40}}') == {"summary": {"overallRisk": 40}}

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"executiveSummary": "ok"}\n```'

        assert extract_json(text) == {"executiveSummary": "ok"}

    def test_object_in_prose(self):
        assert extract_json('Result: {"a": 1} hope this helps') == {"a": 1}

    def test_unparseable_raises(self):
        with pytest.raises(UpstreamServiceError):
            extract_json("no json here")

    def test_empty_raises(self):
        with pytest.raises(UpstreamServiceError):
            extract_json("")

    def test_overall_risk_of(self):
        assert overall_risk_of({"summary": {"overallRisk": "65"}}) == 65
        assert overall_risk_of({"summary": {}}) is None
        assert overall_risk_of({}) is None
        assert overall_risk_of({"summary": {"overallRisk": "high"}}) is None


class TestAnalyzeSprint:
    """Tests for the LLM call."""

    async def test_returns_parsed_analysis(self):
        analysis = {"summary": {"overallRisk": 55}, "executiveSummary": "Moderate risk."}
        client = mock_client_returning(json.dumps(analysis))

        result = await analyze_sprint([make_task("Login")], [], client=client, config=AnalysisConfig({}))

        assert result == analysis
        call = client.chat.completions.create.call_args
        assert call.kwargs["response_format"] == {"type": "json_object"}
        assert call.kwargs["temperature"] == 0.3

    async def test_api_error_becomes_upstream_error(self):
        client = mock_client_returning(None, side_effect=Exception("API Error"))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await analyze_sprint([make_task("Login")], [], client=client, config=AnalysisConfig({}))

        assert "API Error" in exc_info.value.message

    async def test_invalid_json_becomes_upstream_error(self):
        client = mock_client_returning("I cannot help with that")

        with pytest.raises(UpstreamServiceError):
            await analyze_sprint([make_task("Login")], [], client=client, config=AnalysisConfig({}))
