"""
OpenAPI Documentation Models
Provides API metadata, tags and shared error responses
"""

from .api_models import ErrorResponse


class OpenAPITags:
    """Centralized tag definitions for OpenAPI documentation"""

    LEARNING = {
        "name": "📚 Learning Content",
        "description": """
        **Courses, chapters and lessons**

        - **Learning path**: lessons of a chapter with unlock state
        - **Lessons**: ordered content blocks and the learner's position
        """,
    }

    PROGRESS = {
        "name": "📈 Progress",
        "description": "Lesson completion, XP rewards and daily streaks",
    }

    BLOCKS = {
        "name": "🧩 Lesson Blocks",
        "description": """
        **Interactive blocks**

        - Practice quiz answers
        - AI chat and graded prompt-writing tasks with limited attempts
        """,
    }

    AI = {
        "name": "🤖 AI Tools",
        "description": "Metered content generation and evaluation, paid in coins",
    }

    USERS = {
        "name": "👤 Me",
        "description": "Coins, experience and level ladder of the current user",
    }

    AUTH = {
        "name": "🔐 Authentication",
        "description": "Email/password and Telegram Mini App login",
    }

    SYSTEM = {
        "name": "🔧 System",
        "description": "Health checks and API information",
    }

    ALL = [LEARNING, PROGRESS, BLOCKS, AI, USERS, AUTH, SYSTEM]


class OpenAPIMetadata:
    """OpenAPI metadata for documentation"""

    TITLE = "🎓 AI Learning Platform API"

    DESCRIPTION = """
    ## AI Learning Platform API v1.0

    Gamified courses on AI tools: chapters of lessons built from theory, video,
    quiz and AI-chat blocks.

    ### 🚀 Key Features

    - **Linear learning path**: each lesson unlocks when the previous one is completed
    - **XP and levels**: exponential level curve, daily streak bonus
    - **AI tasks**: prompt-writing exercises scored by an evaluator model
    - **Coins**: metered AI usage priced per model and token
    - **Authentication**: email/password and Telegram Mini App
    """

    VERSION = "1.0.0"


def _error_response(description: str, example: dict) -> dict:
    return {
        "description": description,
        "content": {"application/json": {"schema": ErrorResponse.model_json_schema(), "example": example}},
    }


COMMON_RESPONSES = {
    401: _error_response(
        "Unauthorized - Authentication required",
        {"success": False, "error": "Authentication required", "detail": "Authentication required", "status_code": 401},
    ),
    404: _error_response(
        "Not Found",
        {"success": False, "error": "Lesson not found", "detail": "Lesson not found", "status_code": 404},
    ),
    422: _error_response(
        "Validation Error",
        {
            "success": False,
            "error": "Validation Error",
            "detail": [{"field": "body.prompt", "message": "Field required", "code": "missing"}],
            "status_code": 422,
        },
    ),
}

BILLING_RESPONSES = {
    402: _error_response(
        "Payment Required - Not enough coins",
        {
            "success": False,
            "error": "Insufficient coins: required 12, available 3",
            "detail": {"kind": "insufficient_coins", "required": 12, "available": 3},
            "status_code": 402,
        },
    ),
    502: _error_response(
        "Bad Gateway - Upstream model error",
        {
            "success": False,
            "error": "OpenAI API error: 429",
            "detail": {"kind": "upstream_model_error", "upstream_status": 429},
            "status_code": 502,
        },
    ),
}
