from .base import Base
from .user import UserModel
from .course import CourseModel
from .enrollment import EnrollmentModel
from .assignment import AssignmentModel
from .submission import SubmissionModel
from .forum import (
    ForumCategoryModel,
    ForumPostModel,
    ForumReactionModel,
    ForumThreadModel,
)
from .blog import BlogModel
from .course_content import ContentCompletionModel, CourseContentModel

__all__ = [
    "Base",
    "UserModel",
    "CourseModel",
    "EnrollmentModel",
    "AssignmentModel",
    "SubmissionModel",
    "ForumCategoryModel",
    "ForumThreadModel",
    "ForumPostModel",
    "ForumReactionModel",
    "BlogModel",
    "CourseContentModel",
    "ContentCompletionModel",
]
