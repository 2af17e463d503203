from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    OPENAI_API_KEY: str = ""
    NODE_ENV: str = "development"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_DATABASE: str = "ailearning"
    POSTGRES_PORT: str = "5432"  # Default port for PostgreSQL

    # Session tokens
    SESSION_SECRET: str = "your-session-secret-here"
    SESSION_TTL_HOURS: int = 24 * 7

    # Telegram Mini App login
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_DEV_FALLBACK: bool = False  # accept hash=dev_fake_hash initData (never in production)

    # CORS configuration - comma-separated list of allowed origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://localhost:8080"

    # Leveling curve
    XP_BASE: int = 100
    XP_GROWTH_FACTOR: float = 1.5

    # Rewards
    XP_PER_LESSON: int = 10
    XP_PER_CORRECT_ANSWER: int = 2
    XP_STREAK_BONUS_PER_DAY: int = 5
    LESSON_COMPLETION_COINS: int = 5

    # AI metering
    COIN_RATE_USD: float = 0.001  # USD value of one coin
    AI_COST_MULTIPLIER: float = 3.0
    STARTING_COINS: int = 100
    DEFAULT_CHAT_MODEL: str = "gpt-4o-mini"
    EVALUATION_MODEL: str = "gpt-4.1-2025-04-14"

    # Chat task defaults
    TASK_SUCCESS_SCORE: int = 8
    DEFAULT_MAX_ATTEMPTS: int = 3
    DEFAULT_MIN_INTERACTIONS: int = 3

    # Construct the full URL dynamically
    @property
    def POSTGRES_URL(self):
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"
        )

    model_config = SettingsConfigDict(env_file=".env.development", extra="ignore")


settings = Settings()
