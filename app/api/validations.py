from fastapi import APIRouter, File, UploadFile, status

from app.core.errors import InvalidRequestError
from app.dependencies import CurrentUserId, DBSession, Validation
from app.schemas.validation import ImageInfo, UIValidationResponse, UXValidationResponse
from app.services import validation_history

router = APIRouter()


def _image_info(upload: UploadFile, content: bytes, order: int = 0) -> dict:
    return ImageInfo(
        order=order,
        filename=upload.filename or f"screen-{order + 1}",
        content_type=upload.content_type,
        size=len(content),
    ).model_dump()


@router.post(
    "/projects/{project_id}/validations/ux",
    response_model=UXValidationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_ux_validation(
    project_id: str,
    db: DBSession,
    validation: Validation,
    user_id: CurrentUserId,
    screens: list[UploadFile] = File(...),
) -> UXValidationResponse:
    """
    Validate an ordered UX flow.

    Screens are sent in upload order; only their metadata and the
    resulting report are stored.
    """
    contents = [await screen.read() for screen in screens]
    if not any(contents):
        raise InvalidRequestError("At least one screen image is required")

    report = await validation.validate_ux(
        [(content, screen.content_type) for screen, content in zip(screens, contents, strict=True)]
    )
    images = [
        _image_info(screen, content, i)
        for i, (screen, content) in enumerate(zip(screens, contents, strict=True))
    ]

    record = await validation_history.save_ux_validation(db, project_id, user_id, images, report)
    return UXValidationResponse.model_validate(record)


@router.get("/projects/{project_id}/validations/ux", response_model=list[UXValidationResponse])
async def list_project_ux_validations(project_id: str, db: DBSession) -> list[UXValidationResponse]:
    records = await validation_history.list_project_ux_validations(db, project_id)
    return [UXValidationResponse.model_validate(r) for r in records]


@router.get("/users/{user_id}/validations/ux", response_model=list[UXValidationResponse])
async def list_user_ux_validations(user_id: str, db: DBSession) -> list[UXValidationResponse]:
    records = await validation_history.list_user_ux_validations(db, user_id)
    return [UXValidationResponse.model_validate(r) for r in records]


@router.post(
    "/projects/{project_id}/validations/ui",
    response_model=UIValidationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_ui_validation(
    project_id: str,
    db: DBSession,
    validation: Validation,
    user_id: CurrentUserId,
    reference: UploadFile = File(...),
    comparison: UploadFile = File(...),
) -> UIValidationResponse:
    """Run the visual regression and missing-element checks against a reference UI."""
    reference_content = await reference.read()
    comparison_content = await comparison.read()
    if not reference_content or not comparison_content:
        raise InvalidRequestError("Both reference and comparison images are required")

    visual = await validation.visual_regressions(comparison_content, comparison.content_type)
    comparison_result = await validation.ui_comparison(
        (reference.filename or "reference.png", reference_content, reference.content_type),
        (comparison.filename or "comparison.png", comparison_content, comparison.content_type),
    )

    record = await validation_history.save_ui_validation(
        db,
        project_id,
        user_id,
        reference_image=_image_info(reference, reference_content),
        comparison_image=_image_info(comparison, comparison_content),
        visual_regression_results=visual,
        ui_comparison_results=comparison_result,
    )
    return UIValidationResponse.model_validate(record)


@router.get("/projects/{project_id}/validations/ui", response_model=list[UIValidationResponse])
async def list_project_ui_validations(project_id: str, db: DBSession) -> list[UIValidationResponse]:
    records = await validation_history.list_project_ui_validations(db, project_id)
    return [UIValidationResponse.model_validate(r) for r in records]
