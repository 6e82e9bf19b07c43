import base64
from typing import Any

import httpx

from app.config import Settings, get_settings
from app.core.errors import UpstreamServiceError
from app.core.logging import get_logger
from app.services.testgen_client import upstream_error

logger = get_logger(__name__)

UI_COMPARISON_TOLERANCE = "5"
UI_COMPARISON_DESCRIPTION = "UI comparison for missing elements and layout shifts"


def normalize_ux_report(response: Any) -> dict[str, Any]:
    """
    Canonical UX report from a /validateux response.

    The backend has returned the report under `validation_report`, under
    `report`, or as the whole body; this is resolved here once so stored
    records always hold the report itself.
    """
    if not isinstance(response, dict):
        return {}
    report = response.get("validation_report") or response.get("report") or response
    return report if isinstance(report, dict) else {}


def encode_image(content: bytes, content_type: str | None = None) -> str:
    """Data-URL encode an image for the JSON endpoints."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type or 'image/png'};base64,{encoded}"


class ValidationClient:
    """Client for the visual/UX validation backend."""

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
    def from_settings(cls, settings: Settings) -> "ValidationClient":
        return cls(settings.validation_backend_url, timeout=settings.validation_timeout_seconds)

    async def _post(self, path: str, action: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(path, **kwargs)
        except httpx.HTTPError as e:
            logger.bind(action=action, error=str(e)).error("validation_request_error")
            raise UpstreamServiceError(f"{action} failed: {e}") from e

        if resp.status_code >= 400:
            logger.bind(action=action, status=resp.status_code).warning("validation_request_failed")
            raise upstream_error(resp, action)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamServiceError(f"{action} returned invalid JSON") from e
        return data if isinstance(data, dict) else {"result": data}

    async def validate_ux(self, screens: list[tuple[bytes, str | None]]) -> dict[str, Any]:
        """
        Review an ordered set of UX screens.

        Args:
            screens: (content, content_type) per screen, in flow order

        Returns:
            The canonical report (already unwrapped)
        """
        payload = {
            "totalCount": len(screens),
            "images": [
                {"index": i, "image": encode_image(content, content_type)}
                for i, (content, content_type) in enumerate(screens)
            ],
        }
        data = await self._post("/validateux", "UX validation", json=payload)
        report = normalize_ux_report(data)
        logger.bind(screens=len(screens), keys=list(report)[:10]).info("ux_validation_completed")
        return report

    async def visual_regressions(self, content: bytes, content_type: str | None = None) -> dict[str, Any]:
        return await self._post(
            "/visualregressions",
            "Visual regression check",
            json={"image": encode_image(content, content_type)},
        )

    async def ui_comparison(
        self,
        baseline: tuple[str, bytes, str | None],
        comparison: tuple[str, bytes, str | None],
    ) -> dict[str, Any]:
        """Compare a UI screenshot against its reference for missing elements."""
        files = {
            "baseline_image": (baseline[0], baseline[1], baseline[2] or "image/png"),
            "comparison_image": (comparison[0], comparison[1], comparison[2] or "image/png"),
        }
        data = {"tolerance": UI_COMPARISON_TOLERANCE, "test_description": UI_COMPARISON_DESCRIPTION}
        return await self._post("/uicomparison", "UI comparison", files=files, data=data)


def get_validation_client() -> ValidationClient:
    """Dependency that provides the validation backend client."""
    return ValidationClient.from_settings(get_settings())
