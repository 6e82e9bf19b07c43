import json
import re
from typing import Any

import backoff
from httpx import HTTPStatusError
from openai import AsyncOpenAI, RateLimitError

from app.config import AnalysisConfig, get_config, get_settings
from app.core.errors import UpstreamServiceError
from app.core.logging import get_logger
from app.planning.metrics import module_breakdown, status_counts, velocity_rollup

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are an expert AI sprint planning analyst with deep knowledge of software
development patterns, velocity estimation, and risk assessment.
You analyze software development sprints to identify risks, predict outcomes, and recommend
optimizations, basing predictions on historical patterns, industry standards and complexity.

Rules:
- Use ONLY data from the provided tasks - no fabrication
- All task IDs, names and modules must match exactly
- Predictions must be logical (predicted >= planned for high risk)
- Risk scores must correlate with bugs, velocity and complexity
- Insights must reference specific numbers from the data

Output format is strictly a single JSON object matching the structure provided."""

OUTPUT_SCHEMA = """{
  "summary": {
    "totalTasks": <number>, "completedTasks": <number>, "newTasks": <number>,
    "overallRisk": <number 0-100>, "predictedDelay": <number of days>, "confidence": <number 0-100>
  },
  "completedTasksAnalysis": {
    "tasks": [{"name": "...", "module": "...", "plannedVelocity": <n>, "actualVelocity": <n>,
               "bugs": <n>, "performance": "On Track|Slight Delay|Delayed"}],
    "insights": ["<specific insight with numbers>"]
  },
  "newTasksPredictions": {
    "tasks": [{"id": "...", "name": "...", "module": "...", "plannedVelocity": <n>,
               "predictedVelocity": <n>, "plannedDays": <n>, "predictedDays": <n>,
               "riskLevel": "Low|High|Critical", "riskScore": <0-100>, "bugs": <n>,
               "predictedBugs": <n>, "reasoning": "...", "recommendations": ["..."]}],
    "summary": {"highRiskTasks": <n>, "lowRiskTasks": <n>}
  },
  "suggestions": [{"type": "velocity|timeline|bugs|module", "severity": "info|high|critical",
                   "title": "...", "description": "...", "action": "..."}],
  "executiveSummary": "<2-3 sentences: overall risk, critical issue, primary action>"
}"""

INDUSTRY_DEFAULTS = """No historical data available. Use industry standards:
- Average velocity accuracy: 85%
- High complexity tasks (13+ velocity): typically take 25-30% longer
- Backend/API modules: typically 2x more bugs than UI modules
- Tasks with 3+ bugs: high risk, may delay by 2-3 days"""

# ```json ... ``` fenced block, else the outermost braces
_FENCED_JSON = re.compile(r"```(?:json)?\s*\n(.*?)\n```", re.DOTALL)
_BARE_JSON = re.compile(r"\{.*\}", re.DOTALL)


def _task_line(index: int, task: Any) -> str:
    due = getattr(task, "due_date", None)
    status = getattr(task.status, "value", task.status)
    return (
        f"{index}. {task.name}\n"
        f"   Module: {task.module or 'Unassigned'}\n"
        f"   Velocity: {task.velocity or 0} points\n"
        f"   Bugs: {task.bugs or 0}\n"
        f"   Status: {status}\n"
        f"   Due Date: {due.isoformat() if hasattr(due, 'isoformat') else (due or 'Not set')}\n"
        f"   ID: {getattr(task, 'id', '')}"
    )


def build_analysis_prompt(
    current_tasks: list[Any],
    completed_tasks: list[Any],
    max_tasks: int = 100,
) -> str:
    """Build the user prompt from current sprint tasks and completed history."""
    counts = status_counts(current_tasks)
    completed_velocity, total_velocity, _ = velocity_rollup(current_tasks)
    total_bugs = sum(t.bugs or 0 for t in current_tasks)
    completed_pct = round(completed_velocity / total_velocity * 100) if total_velocity else 0
    avg_bugs = f"{total_bugs / len(current_tasks):.1f}" if current_tasks else "0"

    modules = "\n".join(
        f"- {name}: {stats.count} features, {stats.velocity} velocity points, {stats.bugs} bugs"
        for name, stats in module_breakdown(current_tasks).items()
    )
    features = "\n\n".join(
        _task_line(i, t) for i, t in enumerate(current_tasks[:max_tasks], 1)
    )

    if completed_tasks:
        history = f"Found {len(completed_tasks)} completed tasks for pattern analysis:\n\n"
        history += "\n\n".join(
            _task_line(i, t) for i, t in enumerate(completed_tasks[:max_tasks], 1)
        )
    else:
        history = INDUSTRY_DEFAULTS

    return f"""Analyze this sprint.

## CURRENT SPRINT OVERVIEW
- Total Features: {counts.total}
- Total Velocity: {total_velocity} points
- Completed: {completed_velocity} points ({completed_pct}%)
- In Progress: {counts.total - counts.done} features
- To Do: {counts.todo} features
- Total Bugs: {total_bugs} bugs
- Average Bugs per Feature: {avg_bugs}

## MODULE BREAKDOWN
{modules or "- none"}

## CURRENT SPRINT FEATURES
{features or "none"}

## HISTORICAL DATA (Completed Tasks)
{history}

## OUTPUT FORMAT
Return ONLY valid JSON with this structure:
{OUTPUT_SCHEMA}"""


def extract_json(text: str) -> dict:
    """
    Pull the JSON object out of an LLM reply.

    Accepts a bare object, a ```json fenced block, or an object surrounded
    by prose.

    Raises:
        UpstreamServiceError: If no JSON object can be parsed
    """
    text = (text or "").strip()
    if not text:
        raise UpstreamServiceError("No response from analysis model")

    candidates = [text]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    bare = _BARE_JSON.search(text)
    if bare:
        candidates.append(bare.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    logger.bind(response=text[:200]).warning("analysis_json_parse_failed")
    raise UpstreamServiceError("Failed to parse JSON from analysis response")


def overall_risk_of(analysis: dict) -> int | None:
    """The model's overall risk score, if it returned a usable one."""
    value = (analysis.get("summary") or {}).get("overallRisk")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def openai_client() -> AsyncOpenAI:
    """Client built from settings; a missing key is reported as a 503."""
    settings = get_settings()
    if not settings.openai_api_key:
        logger.warning("openai_api_key_not_set")
        raise UpstreamServiceError("OpenAI API key not configured", status_code=503)
    return AsyncOpenAI(api_key=settings.openai_api_key)


@backoff.on_exception(
    backoff.expo,
    (RateLimitError, HTTPStatusError),
    max_tries=5,
    max_time=120,
)
async def complete_json(
    client: AsyncOpenAI,
    model: str,
    prompt: str,
    temperature: float,
    system_prompt: str = SYSTEM_PROMPT,
) -> str:
    """One JSON-mode chat completion; rate limits are retried with backoff."""
    response = await client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
        response_format={"type": "json_object"},
        temperature=temperature,
    )

    usage = response.usage
    if usage:
        logger.info(
            f"llm_completion_finished: tokens={usage.total_tokens} "
            f"(prompt={usage.prompt_tokens}, completion={usage.completion_tokens})"
        )
    return response.choices[0].message.content or ""


async def analyze_sprint(
    current_tasks: list[Any],
    completed_tasks: list[Any],
    client: AsyncOpenAI | None = None,
    config: AnalysisConfig | None = None,
) -> dict:
    """
    Ask the LLM for a sprint risk analysis.

    Args:
        current_tasks: All tasks of the project
        completed_tasks: Done tasks used as historical baseline
        client: Optional OpenAI client (built from settings when omitted)
        config: Analysis configuration

    Returns:
        Parsed analysis JSON

    Raises:
        UpstreamServiceError: If the model is not configured, fails, or
            returns unparseable output
    """
    settings = get_settings()
    config = config or get_config().analysis

    client = client or openai_client()
    prompt = build_analysis_prompt(current_tasks, completed_tasks, config.max_tasks_in_prompt)

    try:
        text = await complete_json(client, settings.llm_model, prompt, config.temperature)
    except Exception as e:
        logger.bind(error=str(e)).error("sprint_analysis_error")
        raise UpstreamServiceError(f"Failed to get AI analysis: {e}") from e

    return extract_json(text)
