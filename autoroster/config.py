"""Configuration loading (YAML or JSON) into validated pydantic models."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Literal, Optional, get_args

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError

SolverName = Literal["backtracking", "cp_sat"]
SOLVERS = frozenset(get_args(SolverName))


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ShiftDefaults(_Section):
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def _is_time_of_day(cls, value: str) -> str:
        from .services.timeplan import parse_time_string

        parse_time_string(value)
        return value

    @model_validator(mode="after")
    def _ends_after_start(self) -> "ShiftDefaults":
        from .services.timeplan import parse_time_string

        if parse_time_string(self.end) <= parse_time_string(self.start):
            raise ValueError("end must be later than start")
        return self


class HoursPolicy(_Section):
    default_max_hours_per_week: float = Field(40.0, gt=0)
    # Drafts always count toward the weekly cap; this only affects the tally.
    seed_fairness_with_drafts: bool = False


class SearchSettings(_Section):
    solver: SolverName = "backtracking"
    max_seconds: Optional[float] = Field(10.0, gt=0)
    max_iterations: Optional[int] = Field(20000, ge=1)
    stop_at_first_complete: bool = False
    parallel_partitions: bool = False
    max_workers: int = Field(4, ge=1)


class SchedulerConfig(_Section):
    db_url: str = "sqlite:///autoroster.db"
    log_level: str = "INFO"
    default_shift: ShiftDefaults = Field(default_factory=ShiftDefaults)
    hours: HoursPolicy = Field(default_factory=HoursPolicy)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @field_validator("default_shift", "hours", "search", mode="before")
    @classmethod
    def _empty_section_is_defaults(cls, value: Any) -> Any:
        # A YAML section header with nothing under it parses as None
        return {} if value is None else value


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        if err.get("type") == "extra_forbidden":
            parts.append(f"Unknown config keys: {loc}")
        else:
            parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def config_from_dict(data: Dict[str, Any] | None) -> SchedulerConfig:
    """
    Validate a parsed config mapping.

    Raises:
        ConfigurationError: For unknown keys and for values of the wrong
            type or out of range, naming each offending key
    """
    try:
        return SchedulerConfig.model_validate({} if data is None else data)
    except PydanticValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: Path to the config file; None returns the defaults

    Returns:
        Validated SchedulerConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    if path is None:
        return config_from_dict({})

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not parse {path}: {exc}") from exc

    return config_from_dict(data)
