"""
Project quality insights.

Collects a project's generated suites (with their latest run), UI and UX
validation results and task board, and asks the LLM for defect trends,
module hotspots and a release readiness verdict.
"""

import json
from typing import Any

from openai import AsyncOpenAI
from pydantic import ValidationError

from app.config import AnalysisConfig, get_config, get_settings
from app.core.errors import UpstreamServiceError
from app.core.logging import get_logger
from app.planning.analyzer import complete_json, extract_json, openai_client
from app.planning.metrics import module_breakdown, status_counts
from app.schemas.insights import ProjectInsights

logger = get_logger(__name__)

INSIGHTS_SYSTEM_PROMPT = """You are an AI quality analyst for a software project.

From the project's planning data, generated test suites with their latest runs,
visual regression results and UX reviews, produce a single JSON object with:

1. Defect trends across builds (increasing, decreasing or stable) and a short explanation
2. Quality hotspots by module, each with a severity (low, medium, high, critical)
3. A release readiness score from 0 to 100
4. A release decision: RELEASE, CAUTION or BLOCK
5. One short, actionable recommendation

Rules:
- Output ONLY valid JSON, nothing outside it
- Base every statement on the provided data
- Unresolved critical defects weigh heavily against release readiness"""

INSIGHTS_SCHEMA = """{
  "defect_trends": {"trend": "increasing|decreasing|stable", "summary": "..."},
  "hotspots": [{"module": "...", "defect_count": <n>, "severity": "low|medium|high|critical"}],
  "release_readiness": {"score": <0-100>, "decision": "RELEASE|CAUTION|BLOCK",
                        "reasoning": ["...", "..."]},
  "recommendation": "..."
}"""


def summarize_suite_history(history: Any) -> dict[str, Any]:
    """Suite fields relevant to quality; payloads and secrets are left out."""
    return {
        "suite_id": history.suite_id,
        "component": history.component,
        "priority": history.priority,
        "total_cases": history.total_cases,
        "breakdown": history.breakdown or {},
        "run_count": history.run_count or 0,
        "last_run": history.last_run,
        "updated_at": history.updated_at,
    }


def summarize_ui_validation(validation: Any) -> dict[str, Any]:
    return {
        "checks": validation.checks_performed or [],
        "visual_regressions": validation.visual_regression_results,
        "ui_comparison": validation.ui_comparison_results,
        "created_at": validation.created_at,
    }


def summarize_ux_validation(validation: Any) -> dict[str, Any]:
    # Screens are referenced by count only, never by content
    return {
        "screens": validation.screen_count,
        "results": validation.validation_results or {},
        "created_at": validation.created_at,
    }


def summarize_tasks(tasks: list[Any]) -> dict[str, Any]:
    counts = status_counts(tasks)
    return {
        "total": counts.total,
        "todo": counts.todo,
        "in_progress": counts.in_progress,
        "done": counts.done,
        "total_bugs": sum(t.bugs or 0 for t in tasks),
        "modules": {
            name: {"features": stats.count, "velocity": stats.velocity, "bugs": stats.bugs}
            for name, stats in module_breakdown(tasks).items()
        },
    }


def build_insights_prompt(
    histories: list[Any],
    ui_validations: list[Any],
    ux_validations: list[Any],
    tasks: list[Any],
    max_records: int = 50,
) -> str:
    """User prompt with the newest max_records of each record kind."""
    data = {
        "planning": summarize_tasks(tasks),
        "test_generation_history": [summarize_suite_history(h) for h in histories[:max_records]],
        "ui_validations": [summarize_ui_validation(v) for v in ui_validations[:max_records]],
        "ux_validations": [summarize_ux_validation(v) for v in ux_validations[:max_records]],
    }
    return f"""Analyze the following project data and generate insights:

{json.dumps(data, indent=2, default=str)}

Return ONLY valid JSON with this structure:
{INSIGHTS_SCHEMA}"""


def parse_insights(text: str) -> ProjectInsights:
    """
    Parse and validate the model's reply.

    Raises:
        UpstreamServiceError: If the reply is not JSON or misses required sections
    """
    data = extract_json(text)
    try:
        return ProjectInsights.model_validate(data)
    except ValidationError as e:
        logger.bind(keys=list(data)[:10], errors=e.error_count()).warning("insights_invalid_format")
        raise UpstreamServiceError("Invalid insights format received from model") from e


async def generate_insights(
    histories: list[Any],
    ui_validations: list[Any],
    ux_validations: list[Any],
    tasks: list[Any],
    client: AsyncOpenAI | None = None,
    config: AnalysisConfig | None = None,
) -> ProjectInsights:
    """
    Ask the LLM for quality insights over a project's records.

    Raises:
        UpstreamServiceError: If the model is not configured, fails, or
            returns output that does not match ProjectInsights
    """
    settings = get_settings()
    config = config or get_config().analysis

    client = client or openai_client()
    prompt = build_insights_prompt(
        histories, ui_validations, ux_validations, tasks, config.insights_max_records
    )

    logger.bind(
        suite_histories=len(histories),
        ui_validations=len(ui_validations),
        ux_validations=len(ux_validations),
        tasks=len(tasks),
    ).info("project_insights_requested")

    try:
        text = await complete_json(
            client,
            settings.llm_model,
            prompt,
            config.temperature,
            system_prompt=INSIGHTS_SYSTEM_PROMPT,
        )
    except Exception as e:
        logger.bind(error=str(e)).error("project_insights_error")
        raise UpstreamServiceError(f"Failed to generate insights: {e}") from e

    insights = parse_insights(text)
    logger.bind(
        score=insights.release_readiness.score,
        decision=insights.release_readiness.decision,
        hotspots=len(insights.hotspots),
    ).info("project_insights_generated")
    return insights
