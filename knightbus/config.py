from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class KnightRecord(BaseModel):
    """Structured seed knight configuration."""

    name: str = Field(..., description="Knight name.")
    job: str = Field(..., description="Knight job.")
    power: int = Field(0, description="Stored power, used verbatim (already scaled).")
    relay_count: int = Field(0, ge=0, description="Completed missions so far.")
    is_active: bool = Field(
        True, description="Inactive knights start off-duty instead of waiting."
    )


class ClientRecord(BaseModel):
    """Structured seed client configuration."""

    name: str = Field(..., description="Client name.")
    job: str = Field(..., description="Client job.")
    power: float = Field(0, description="Power as typed; scaled by power_scale.")
    notes: str = Field("", description="Free-text remarks.")


class Config(BaseModel):
    """Configuration data for starting a knightbus roster."""

    name: str = Field("knightbus", description="Name of the roster.")
    power_scale: int = Field(
        1000, gt=0, description="Typed power is multiplied by this before storing."
    )
    imported_knight_status: Literal["off-duty", "waiting"] = Field(
        "off-duty", description="Status given to knights created by an import."
    )
    roster_format: Literal["plain", "escaped"] = Field(
        "plain", description="Export format for the knight roster."
    )
    knights_file: Path | None = Field(
        None, description="Optional roster text file imported at startup."
    )
    knights: list[str | KnightRecord] = Field(
        default_factory=list,
        description="Seed knights as roster lines or structured records.",
    )
    clients: list[ClientRecord] = Field(
        default_factory=list, description="Seed clients added as waiting."
    )
    log_level: str = Field("WARNING", description="Logging level name.")

    def validate_paths(self) -> None:
        """Ensure knights_file, if given, exists and is a file."""
        if self.knights_file is None:
            return
        if not self.knights_file.exists():
            raise FileNotFoundError(f"knights_file does not exist: {self.knights_file}")
        if not self.knights_file.is_file():
            raise ValueError(f"knights_file is not a file: {self.knights_file}")


def resolve_config_paths(config_data: dict, config_path: Path) -> dict:
    """Resolve a relative knights_file against the configuration file directory.

    Args:
        config_data: Raw configuration dictionary.
        config_path: Path to the configuration file.

    Returns:
        dict: Configuration data with knights_file made absolute.
    """
    resolved_data = dict(config_data or {})
    knights_file = resolved_data.get("knights_file")
    if knights_file and config_path:
        path = Path(knights_file)
        if not path.is_absolute():
            resolved_data["knights_file"] = str((config_path.parent / path).resolve())
    return resolved_data
