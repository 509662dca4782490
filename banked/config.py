from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    db_url: str = "sqlite:///./banked.db"
    bearer_token: Optional[str] = None
    log_level: str = "INFO"

    # registration seed values
    seed_balance_cents: int = 0
    seed_diamonds: int = 0
    seed_lives: int = 5
    max_lives: int = 5

    points_per_diamond: int = 100
    xp_per_level: int = 1000
    retry_cost: int = 10
    extra_question_cost: int = 10
    question_batch_size: int = 10
    max_question_batch_size: int = 50
    prize_pool_entry_value: int = 5
    leaderboard_limit: int = 50

settings = Settings()

class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

PRIZE_POOL_ID = 1
