# __init__.py
from edupath.models.course import ApprovalStatus, Course, CourseCategory, CourseLevel, CourseStatus, Tag, course_tags
from edupath.models.learning_path import LearningPath, LearningPathItem
from edupath.models.recommendation import Recommendation, RecommendationCourse
from edupath.models.user import User

__all__ = [
	"ApprovalStatus",
	"Course",
	"CourseCategory",
	"CourseLevel",
	"CourseStatus",
	"LearningPath",
	"LearningPathItem",
	"Recommendation",
	"RecommendationCourse",
	"Tag",
	"User",
	"course_tags",
]
