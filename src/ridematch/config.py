"""Runtime settings for the scheduler, read from RIDEMATCH_* environment variables."""

from datetime import time
from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="RIDEMATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "RideMatch Scheduler API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted schedule outputs.")
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing leg distances and durations.",
    )
    osrm_timeout_seconds: float = Field(default=5.0, gt=0.0)
    osrm_max_retries: int = Field(default=1, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)
    fallback_speed_kmh: float = Field(
        default=30.0,
        gt=0.0,
        description="Average speed assumed when no live routing data is available.",
    )

    # Genetic algorithm
    population_size: int = Field(default=200, ge=2)
    generation_count: int = Field(default=150, ge=0)
    elite_count: int = Field(default=10, ge=1)
    tournament_size: int = Field(default=3, ge=1)
    crossover_rate: float = Field(default=0.8, ge=0.0, le=1.0)
    reassignment_rate: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Per-passenger probability of moving to another vehicle."
    )
    reorder_rate: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Per-vehicle probability of swapping two stops."
    )
    max_workers: Optional[int] = Field(
        default=None, ge=1, description="Fitness evaluation workers. Defaults to the CPU count."
    )
    use_processes: bool = Field(
        default=True,
        description="Score in worker processes instead of threads; fitness is CPU-bound Python.",
    )
    random_seed: Optional[int] = None

    # Fitness weights
    distance_weight: float = Field(default=1.0, ge=0.0)
    time_weight: float = Field(default=0.5, ge=0.0)
    late_arrival_weight: float = Field(default=5.0, ge=0.0)
    early_arrival_weight: float = Field(default=0.1, ge=0.0)
    unassigned_penalty: float = Field(default=1_000_000.0, gt=0.0)
    default_lead_minutes: int = Field(
        default=60,
        ge=0,
        description="Minutes before the target time that vehicles leave when no departure time is given.",
    )

    # Daily scheduling
    schedule_enabled: bool = True
    schedule_input_path: Optional[Path] = Field(
        default=None,
        description="JSON file with passengers, vehicles and destination read by the daily run.",
    )
    scheduled_time: time = Field(default=time(hour=20, minute=0), description="Local time of the daily run.")

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def _parse_time_of_day(cls, value: Any) -> Any:
        """Accept "HH:MM" or "HH:MM:SS" strings from the environment."""
        if isinstance(value, str) and value.strip():
            parts = [int(part) for part in value.strip().split(":")]
            while len(parts) < 3:
                parts.append(0)
            return time(hour=parts[0], minute=parts[1], second=parts[2])
        return value

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        """Accept a JSON array or a comma-separated string for the CORS origins."""
        if not isinstance(value, str):
            return value
        text = value.strip()
        if text.startswith("["):
            return tuple(str(item) for item in json.loads(text))
        return tuple(item.strip() for item in text.split(",") if item.strip())


settings = Settings()
