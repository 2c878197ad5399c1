# recommendations.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from edupath.database import get_db
from edupath.models.user import User
from edupath.routers.dependencies import get_current_user, get_llm_client, get_optional_user
from edupath.schemas.learning_path import LearningPathOut
from edupath.schemas.recommendation import (
    ClarifyRequest,
    ClarifyResponse,
    FollowUpRequest,
    FollowUpResponse,
    RecommendationCreateRequest,
    RecommendationResponse,
    SavePathRequest,
    SaveRecommendationRequest,
    SaveRecommendationResponse,
)
from edupath.services import learning_path_service, recommendation_service
from edupath.services.learning_path_service import LearningPathPersistenceError
from edupath.services.llm_client import LLMClient, LLMError
from edupath.services.recommendation_store import RecommendationNotFoundError, RecommendationPersistenceError


router = APIRouter(prefix="/recommendations", tags=["recommendations"])


def _not_found(exc: RecommendationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc) or "Recommendation not found")


@router.post("", response_model=RecommendationResponse)
async def create_recommendation_endpoint(
    payload: RecommendationCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
) -> RecommendationResponse:
    try:
        result = await recommendation_service.generate_recommendation(
            db,
            llm,
            user_id=current_user.id,
            goal=payload.goal,
            current_level=payload.current_level,
            preferences=payload.preferences,
            verbosity=payload.verbosity,
            guidance_mode=payload.guidance_mode,
        )
    except RecommendationPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not save recommendation") from exc
    return RecommendationResponse.model_validate(result)


@router.post("/clarify", response_model=ClarifyResponse)
async def clarify_endpoint(
    payload: ClarifyRequest,
    current_user: Optional[User] = Depends(get_optional_user),
    llm: LLMClient = Depends(get_llm_client),
) -> ClarifyResponse:
    try:
        result = await recommendation_service.clarify(
            llm,
            question=payload.question,
            context=payload.context,
            user_id=current_user.id if current_user else None,
        )
    except LLMError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Model request failed") from exc
    return ClarifyResponse(**result)


@router.api_route("/my-paths", methods=["GET", "POST"], response_model=list[LearningPathOut])
def list_my_paths_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[LearningPathOut]:
    paths = learning_path_service.list_learning_paths(db, current_user.id)
    return [LearningPathOut.model_validate(learning_path_service.serialize_learning_path(p)) for p in paths]


@router.post("/{recommendation_id}/save", response_model=SaveRecommendationResponse)
def save_recommendation_endpoint(
    recommendation_id: int,
    payload: Optional[SaveRecommendationRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SaveRecommendationResponse:
    saved = bool(payload.saved) if payload else False
    try:
        result = recommendation_service.save_recommendation(
            db, user_id=current_user.id, recommendation_id=recommendation_id, saved=saved
        )
    except RecommendationNotFoundError as exc:
        raise _not_found(exc) from exc
    except RecommendationPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not save recommendation") from exc
    return SaveRecommendationResponse(**result)


@router.post("/{recommendation_id}/followup", response_model=FollowUpResponse)
async def follow_up_endpoint(
    recommendation_id: int,
    payload: FollowUpRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
) -> FollowUpResponse:
    try:
        result = await recommendation_service.follow_up(
            db,
            llm,
            user_id=current_user.id,
            recommendation_id=recommendation_id,
            question=payload.question,
        )
    except RecommendationNotFoundError as exc:
        raise _not_found(exc) from exc
    except LLMError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Model request failed") from exc
    return FollowUpResponse(**result)


@router.post("/{recommendation_id}/save-path", response_model=LearningPathOut)
def save_path_endpoint(
    recommendation_id: int,
    payload: Optional[SavePathRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LearningPathOut:
    body = payload or SavePathRequest()
    try:
        path = learning_path_service.save_learning_path(
            db,
            user_id=current_user.id,
            recommendation_id=recommendation_id,
            name=body.name,
            selected_course_ids=body.selected_course_ids,
        )
    except RecommendationNotFoundError as exc:
        raise _not_found(exc) from exc
    except LearningPathPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not save learning path") from exc
    return LearningPathOut.model_validate(learning_path_service.serialize_learning_path(path))
