# __init__.py
from edupath.schemas.learning_path import LearningPathItemOut, LearningPathOut
from edupath.schemas.recommendation import (
	ClarifyRequest,
	ClarifyResponse,
	CourseCard,
	FollowUpRequest,
	FollowUpResponse,
	RecommendationCreateRequest,
	RecommendationResponse,
	SavePathRequest,
	SaveRecommendationRequest,
	SaveRecommendationResponse,
	StageCourse,
)
from edupath.schemas.user import TokenData

__all__ = [
	"ClarifyRequest",
	"ClarifyResponse",
	"CourseCard",
	"FollowUpRequest",
	"FollowUpResponse",
	"LearningPathItemOut",
	"LearningPathOut",
	"RecommendationCreateRequest",
	"RecommendationResponse",
	"SavePathRequest",
	"SaveRecommendationRequest",
	"SaveRecommendationResponse",
	"StageCourse",
	"TokenData",
]
