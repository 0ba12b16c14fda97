"""Configuration settings for the chatflow decision pipeline."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Pipeline-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHATFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level",
    )

    # Generation settings
    generation_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        description="Timeout for the external generation call",
    )

    # Hard-block guard
    enable_hard_block: bool = Field(
        default=True,
        description="Check messages against the hard-block harm filter",
    )
    hard_block_message: str = Field(
        default=(
            "I can't help with that. If you or someone else is in danger, "
            "please contact local emergency services or a crisis helpline right away."
        ),
        description="Fixed reply returned when a message is hard-blocked",
    )

    # Analytics
    violation_log_size: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Number of failing validations kept for violation stats",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level."""
        return str(v).upper()

    @field_validator("hard_block_message")
    @classmethod
    def validate_hard_block_message(cls, v: str) -> str:
        """Validate that the safety message is not empty."""
        if not v or not v.strip():
            raise ValueError("Hard-block message cannot be empty")
        return v.strip()


class ClassifierSettings(BaseSettings):
    """Conflict classifier tunables."""

    model_config = SettingsConfigDict(
        env_prefix="CLASSIFIER_",
        env_file=".env",
        extra="ignore",
    )

    pattern_weight: float = Field(
        default=1.0,
        gt=0.0,
        le=5.0,
        description="Evidence weight of a structural pattern match",
    )
    keyword_weight: float = Field(
        default=0.5,
        gt=0.0,
        le=5.0,
        description="Evidence weight of a keyword phrase match",
    )

    # Severity escalation
    intensity_word_bonus: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Bonus per intensity/superlative word",
    )
    uppercase_run_bonus: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Bonus for a run of uppercase letters",
    )
    uppercase_run_length: int = Field(
        default=3,
        ge=2,
        le=20,
        description="Minimum uppercase run length counted as shouting",
    )
    repeated_punctuation_bonus: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Bonus for repeated exclamation marks",
    )
    escalation_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=5.0,
        description="Accumulated bonus that escalates severity one level",
    )


class RoutingSettings(BaseSettings):
    """Model routing and token-cost settings."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTING_",
        env_file=".env",
        extra="ignore",
    )

    # Cost estimation
    tokens_per_word: float = Field(
        default=1.3,
        gt=0.0,
        le=10.0,
        description="Approximate input tokens per word",
    )
    response_multiplier: float = Field(
        default=1.5,
        gt=0.0,
        le=20.0,
        description="Output tokens as a multiple of input tokens",
    )
    use_tiktoken: bool = Field(
        default=False,
        description="Count input tokens with tiktoken instead of the word ratio",
    )
    tiktoken_encoding: str = Field(
        default="cl100k_base",
        description="tiktoken encoding used when use_tiktoken is enabled",
    )

    # Pool allocation
    allow_secondary_pool: bool = Field(
        default=True,
        description="Allow lite models to draw from the secondary pool",
    )


class CompactionSettings(BaseSettings):
    """Context compaction settings."""

    model_config = SettingsConfigDict(
        env_prefix="COMPACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Enable context compaction",
    )
    tokens_per_char: float = Field(
        default=0.25,
        gt=0.0,
        le=2.0,
        description="Approximate tokens per character",
    )
    min_messages: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Minimum number of messages always retained",
    )
    keep_recent: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of most recent messages always retained",
    )

    # Smart summary
    summary_min_messages: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Older messages required before a summary is synthesized",
    )
    summary_max_topics: int = Field(default=5, ge=1, le=20)
    summary_max_key_points: int = Field(default=6, ge=1, le=20)
    summary_max_decisions: int = Field(default=4, ge=1, le=20)
    summary_max_code_refs: int = Field(default=5, ge=1, le=20)
    summary_cache_ttl_seconds: int = Field(
        default=1800,
        ge=1,
        le=86400,
        description="Time-to-live for cached summaries",
    )
    summary_cache_max_size: int = Field(
        default=256,
        ge=1,
        le=10000,
        description="Maximum cached summaries before eviction",
    )

    # Priority weights
    recency_weight: float = Field(default=30.0, ge=0.0)
    question_bonus: float = Field(default=20.0, ge=0.0)
    code_bonus: float = Field(default=15.0, ge=0.0)
    important_bonus: float = Field(default=25.0, ge=0.0)
    user_role_bonus: float = Field(default=5.0, ge=0.0)
    long_message_bonus: float = Field(default=10.0, ge=0.0)
    long_message_chars: int = Field(default=200, ge=1)


class ValidationSettings(BaseSettings):
    """Response validation and regeneration settings."""

    model_config = SettingsConfigDict(
        env_prefix="VALIDATION_",
        env_file=".env",
        extra="ignore",
    )

    acceptance_threshold: int = Field(
        default=75,
        ge=0,
        le=100,
        description="Score below which a reply is regenerated",
    )
    graceful_threshold: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Score at which a reply counts as graceful",
    )
    enable_regeneration: bool = Field(
        default=True,
        description="Allow one regeneration attempt for failing replies",
    )
    regenerate_without_conflict: bool = Field(
        default=False,
        description="Also regenerate failing replies when no conflict was detected",
    )
    critical_penalty: int = Field(default=30, ge=0, le=100)
    moderate_penalty: int = Field(default=15, ge=0, le=100)
    minor_penalty: int = Field(default=5, ge=0, le=100)
    regeneration_max_tokens: Optional[int] = Field(
        default=None,
        ge=16,
        description="Max tokens for the regeneration call (defaults to plan limit)",
    )


@lru_cache()
def get_core_settings() -> CoreSettings:
    """Get cached core settings instance.

    Returns:
        CoreSettings instance
    """
    return CoreSettings()


@lru_cache()
def get_classifier_settings() -> ClassifierSettings:
    """Get cached classifier settings instance."""
    return ClassifierSettings()


@lru_cache()
def get_routing_settings() -> RoutingSettings:
    """Get cached routing settings instance.

    Returns:
        RoutingSettings instance
    """
    return RoutingSettings()


@lru_cache()
def get_compaction_settings() -> CompactionSettings:
    """Get cached compaction settings instance.

    Returns:
        CompactionSettings instance
    """
    return CompactionSettings()


@lru_cache()
def get_validation_settings() -> ValidationSettings:
    """Get cached validation settings instance."""
    return ValidationSettings()
