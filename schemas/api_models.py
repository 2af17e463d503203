"""
Pydantic schemas for API v1
This is the single source of truth for all API contracts
"""

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Union
from datetime import datetime


# ============================================================================
# BASE MODELS
# ============================================================================


class BaseResponse(BaseModel):
    """Base response with common fields"""

    success: bool = True
    message: Optional[str] = None


class CamelRequest(BaseModel):
    """Request body accepting both camelCase and snake_case keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# AUTH MODELS
# ============================================================================


class UserResponse(BaseModel):
    id: int
    email: Optional[str] = None
    telegram_id: Optional[int] = None
    telegram_username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RegisterRequest(CamelRequest):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(CamelRequest):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class TelegramAuthRequest(CamelRequest):
    init_data: str = Field(..., min_length=1)


class AuthResponse(BaseResponse):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    is_new_user: bool = False


# ============================================================================
# LEARNING CONTENT MODELS
# ============================================================================


class CourseResponse(BaseModel):
    id: int
    title: str
    description: str
    order_index: int
    difficulty: str
    lessons_count: int
    duration_hours: int
    icon: Optional[str] = None
    color: Optional[str] = None
    bg_color: Optional[str] = None
    badges: Optional[List[str]] = None

    model_config = ConfigDict(from_attributes=True)


class ChapterResponse(BaseModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class CourseDetailResponse(CourseResponse):
    chapters: List[ChapterResponse] = []


class LessonSummary(BaseModel):
    id: int
    chapter_id: int
    title: str
    description: str
    order_index: int
    lesson_type: str
    duration_minutes: int
    points: int

    model_config = ConfigDict(from_attributes=True)


class PathPosition(BaseModel):
    x: int
    y: int


class LearningPathLesson(LessonSummary):
    status: str
    unlocked: bool
    completed: bool
    is_current: bool
    progress_percentage: int
    position: PathPosition


class LearningPathResponse(BaseModel):
    chapter: ChapterResponse
    lessons: List[LearningPathLesson]
    current_lesson_id: Optional[int] = None
    completed_count: int
    total_count: int


class LessonDetailResponse(BaseModel):
    lesson: LessonSummary
    status: str
    blocks: List[Dict[str, Any]]
    player: Dict[str, Any]


# ============================================================================
# PROGRESS MODELS
# ============================================================================


class ProgressUpdateRequest(CamelRequest):
    lesson_id: int
    progress_percentage: int = Field(100, ge=0, le=100)
    completed: bool = True


class ProgressRecord(BaseModel):
    lesson_id: int
    progress_percentage: int
    completed: bool
    completed_at: Optional[datetime] = None
    points_earned: int
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProgressRewards(BaseModel):
    newly_completed: bool
    xp_awarded: int = 0
    streak_bonus: int = 0
    coins_awarded: int = 0
    total_xp: Optional[int] = None
    level: Optional[int] = None
    previous_level: Optional[int] = None
    leveled_up: bool = False


class ProgressUpdateResponse(BaseResponse):
    data: ProgressRecord
    rewards: ProgressRewards


# ============================================================================
# BLOCK INTERACTION MODELS
# ============================================================================


class ChatContextMessage(BaseModel):
    role: str = Field(..., pattern="^(user|assistant)$")
    content: str


class PracticeAnswerRequest(CamelRequest):
    option_index: int = Field(..., ge=0)


class PracticeAnswerResponse(BaseModel):
    block_id: int
    correct: bool
    correct_index: int
    explanation: Optional[str] = None
    can_advance: bool = True


class BlockMessageRequest(CamelRequest):
    prompt: str = Field(..., min_length=1, max_length=8000)
    context: List[ChatContextMessage] = Field(default_factory=list, max_length=50)


# ============================================================================
# AI TOOL MODELS
# ============================================================================


class GenerateRequest(CamelRequest):
    prompt: str = Field(..., min_length=1, max_length=16000)
    model: Optional[str] = None
    system_prompt: Optional[str] = None


class Usage(BaseModel):
    input_tokens: int
    output_tokens: int


class GenerateResponse(BaseModel):
    content: str
    model: str
    usage: Usage
    coins_deducted: int
    remaining_coins: Optional[int] = None


class EvaluationTask(CamelRequest):
    description: str
    criteria: List[str] = Field(default_factory=list)


class EvaluateRequest(CamelRequest):
    prompt: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    task: EvaluationTask
    system_prompt: Optional[str] = None


class EvaluationResponse(BaseModel):
    evaluation: Dict[str, Any]
    usage: Usage
    coins_deducted: int
    remaining_coins: Optional[int] = None


class ModelInfo(BaseModel):
    id: str
    input_price_per_million: float
    output_price_per_million: float
    completion_token_limit: int
    max_cost_coins: int


# ============================================================================
# USER STATS MODELS
# ============================================================================


class CoinsResponse(BaseModel):
    total_coins: int
    coins_spent: int
    is_pro: bool


class ExperienceResponse(BaseModel):
    total_xp: int
    formatted_xp: str
    streak_count: int
    level: int
    xp_in_level: int
    xp_for_next: int
    total_xp_for_current_level: int
    progress: float
    progress_percentage: int


class LadderLevelResponse(BaseModel):
    level: int
    total_xp_required: int
    xp_required: int
    is_completed: bool
    is_current: bool
    is_locked: bool
    progress: float


class LevelLadderResponse(BaseModel):
    current_level: int
    total_xp: int
    levels: List[LadderLevelResponse]


# ============================================================================
# ERROR MODELS
# ============================================================================


class ErrorDetail(BaseModel):
    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: Optional[Union[str, List[ErrorDetail], Dict[str, Any]]] = None
    status_code: int
    request_id: Optional[str] = None
    correlation_id: Optional[str] = None
