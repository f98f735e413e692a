import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    # Auto-snap radius used when a caller does not pass one (meters)
    snap_distance_m: float = Field(
        default=float(os.getenv("FIBER_SNAP_DISTANCE_M", "30"))
    )

    # Coordinate tolerances
    same_point_epsilon_deg: float = Field(
        default=float(os.getenv("FIBER_SAME_POINT_EPSILON_DEG", "1e-7"))
    )
    disconnect_threshold_m: float = Field(
        default=float(os.getenv("FIBER_DISCONNECT_THRESHOLD_M", "0.1"))
    )
    duplicate_point_threshold_m: float = Field(
        default=float(os.getenv("FIBER_DUPLICATE_POINT_THRESHOLD_M", "0.01"))
    )

    # OTDR simulation
    otdr_box_slack_m: float = Field(default=float(os.getenv("OTDR_BOX_SLACK_M", "13")))
    otdr_max_hops: int = Field(default=int(os.getenv("OTDR_MAX_HOPS", "50")))

    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    @field_validator(
        "snap_distance_m",
        "same_point_epsilon_deg",
        "disconnect_threshold_m",
        "duplicate_point_threshold_m",
        "otdr_box_slack_m",
        mode="after",
    )
    @classmethod
    def validate_non_negative(cls, v: float, info) -> float:
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @field_validator("otdr_max_hops", mode="after")
    @classmethod
    def validate_max_hops(cls, v: int) -> int:
        if v < 1:
            raise ValueError("otdr_max_hops must be at least 1")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    class Config:
        frozen = True


settings = Settings()
