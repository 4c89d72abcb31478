# app/config/settings.py

from typing import List

from pydantic_settings import BaseSettings

from app.domain.grouping import MatchingOptions, ScoringWeights


class Settings(BaseSettings):
    ENV: str = "development"
    DATABASE_URL: str = "postgresql+asyncpg://matching_user:matching_pass@db:5432/matching"
    LOG_LEVEL: str = "INFO"

    # bearer token expected by the scheduled / admin trigger
    CRON_SECRET: str = ""

    MIN_GROUP_SCORE: float = 0.55
    COOLDOWN_WEEKS: int = 6
    TARGET_GROUP_SIZES: List[int] = [3, 4]
    ALLOW_PAIR_ONLY_GROUPS: bool = False
    BALANCED_GENDER_SHAPE: bool = True
    MATCHING_RUN_TIMEOUT_SECONDS: float = 300

    MATCH_WEIGHT_SPECIALTY: float = 0.3
    MATCH_WEIGHT_INTERESTS: float = 0.4
    MATCH_WEIGHT_PROXIMITY: float = 0.2
    MATCH_WEIGHT_AVAILABILITY: float = 0.1

    class Config:
        env_file = ".env"

    def scoring_weights(self) -> ScoringWeights:
        return ScoringWeights(
            specialty=self.MATCH_WEIGHT_SPECIALTY,
            interests=self.MATCH_WEIGHT_INTERESTS,
            proximity=self.MATCH_WEIGHT_PROXIMITY,
            availability=self.MATCH_WEIGHT_AVAILABILITY,
        )

    def matching_options(self) -> MatchingOptions:
        return MatchingOptions(
            min_group_score=self.MIN_GROUP_SCORE,
            cooldown_weeks=self.COOLDOWN_WEEKS,
            target_sizes=tuple(self.TARGET_GROUP_SIZES),
            allow_pair_only_groups=self.ALLOW_PAIR_ONLY_GROUPS,
            balanced_shape=self.BALANCED_GENDER_SHAPE,
            weights=self.scoring_weights(),
        )


settings = Settings()
