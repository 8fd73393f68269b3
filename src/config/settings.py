"""Solver and simulation settings loaded from environment variables."""

import math
from enum import StrEnum

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Settings loaded from environment variables / .env file.

    Solver defaults reproduce the reference behaviour: β = 0.001, J = √2·A,
    line search starting at α = 1 and halving down to 1e-3.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Least-squares solver ---
    DAMPING_BETA: float = Field(
        default=0.001,
        ge=0.0,
        description="Damping added to the normal equations (0 = Gauss-Newton).",
    )
    JACOBIAN_SCALE: float = Field(
        default=math.sqrt(2.0),
        gt=0.0,
        description="k in the constant Jacobian J = k·A of the linear model.",
    )
    LINE_SEARCH_INITIAL_ALPHA: float = Field(
        default=1.0,
        gt=0.0,
        description="First step scale tried by the backtracking line search.",
    )
    LINE_SEARCH_SHRINK: float = Field(
        default=0.5,
        gt=0.0,
        lt=1.0,
        description="Factor applied to the step scale after a rejected trial.",
    )
    LINE_SEARCH_ALPHA_FLOOR: float = Field(
        default=0.001,
        gt=0.0,
        description="Step scale below which the line search gives up.",
    )

    # --- Approximate inverse ---
    APPROX_INVERSE_DEPTH: int = Field(
        default=5,
        ge=0,
        description="Feedback levels followed by the flow-based inverse.",
    )

    # --- Economy simulation ---
    POPULATION: float = Field(default=100.0, gt=0.0)
    OVERPRODUCTION_TARGET: float = Field(
        default=1.01,
        gt=0.0,
        description="Supply/demand ratio the labor allocation aims for.",
    )
    MIN_WORKFORCE_ALLOC: float = Field(
        default=0.01,
        ge=0.0,
        description="Floor on laborers per industry after reallocation.",
    )
    SOLVER_STEPS_PER_TICK: int = Field(default=1, ge=1)

    # --- Logging ---
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level.",
    )

    @model_validator(mode="after")
    def _check_line_search(self) -> "Settings":
        if self.LINE_SEARCH_ALPHA_FLOOR >= self.LINE_SEARCH_INITIAL_ALPHA:
            msg = "LINE_SEARCH_ALPHA_FLOOR must be below LINE_SEARCH_INITIAL_ALPHA."
            raise ValueError(msg)
        return self


def get_settings() -> Settings:
    """Factory function so callers and tests can pick up env overrides."""
    return Settings()
