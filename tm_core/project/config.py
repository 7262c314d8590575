from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from tm_core import constants
from tm_core.errors import ConfigurationError

TokenGranularity = Literal["word", "ngram"]


def _describe_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "config"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


class MatchingConfig(BaseModel):
    """Scoring weights, thresholds and cache sizing for one matching service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    distance_weight: float = Field(default=constants.DISTANCE_WEIGHT, ge=0.0, le=1.0)
    affix_weight: float = Field(default=constants.AFFIX_WEIGHT, ge=0.0, le=1.0)
    token_weight: float = Field(default=constants.TOKEN_WEIGHT, ge=0.0, le=1.0)
    context_boost: float = Field(default=constants.CONTEXT_BOOST, ge=0.0, le=1.0)
    category_boost: float = Field(default=constants.CATEGORY_BOOST, ge=0.0, le=1.0)
    min_similarity: float = Field(default=constants.MIN_SIMILARITY, ge=0.0, le=1.0)
    auto_accept_threshold: float = Field(
        default=constants.AUTO_ACCEPT_THRESHOLD, ge=0.0, le=1.0
    )
    max_fuzzy_results: int = Field(default=constants.MAX_FUZZY_RESULTS, gt=0)
    cache_capacity: int = Field(default=constants.MATCH_CACHE_CAPACITY, gt=0)
    ngram_size: int = Field(default=constants.NGRAM_SIZE, gt=0)
    token_granularity: TokenGranularity = "ngram"
    affix_prefix_cap: int = Field(default=constants.AFFIX_PREFIX_CAP, ge=0)
    affix_scaling_factor: float = Field(
        default=constants.AFFIX_SCALING_FACTOR, ge=0.0, le=1.0
    )
    case_sensitive: bool = False
    distance_memo_size: int = Field(default=0, ge=0)
    narrow_by_context: bool = True

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid matching configuration: {_describe_validation_error(exc)}"
            ) from exc

    @model_validator(mode="after")
    def _check_affix_bound(self) -> "MatchingConfig":
        # affixSim must stay within [0, 1] for any distance similarity.
        if self.affix_prefix_cap * self.affix_scaling_factor > 1.0:
            raise ValueError("affix_prefix_cap * affix_scaling_factor must not exceed 1.0")
        return self


class ProjectConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_name: str
    default_source_locale: str = "en"
    default_target_locale: str = "fr"
    matching: MatchingConfig = Field(default_factory=MatchingConfig)


def build_matching_config(**values: Any) -> MatchingConfig:
    return MatchingConfig(**values)


def _validate(model: type[BaseModel], content: dict[str, Any]) -> Any:
    try:
        return model.model_validate(content)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid {model.__name__}: {_describe_validation_error(exc)}"
        ) from exc


def _load_yaml(config_path: Path) -> dict[str, Any]:
    with Path(config_path).open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")
    return content


def read_matching_config(config_path: Path) -> MatchingConfig:
    """Read a matching config from YAML.

    Accepts either a bare matching mapping or a project file with a
    ``matching`` section.
    """

    content = _load_yaml(config_path)
    if "project_name" in content:
        return read_config(config_path).matching
    section = content.get("matching", content)
    return _validate(MatchingConfig, section)


def write_config(config_path: Path, config: ProjectConfig) -> None:
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.model_dump(mode="python"), handle, sort_keys=False)


def read_config(config_path: Path) -> ProjectConfig:
    return _validate(ProjectConfig, _load_yaml(config_path))


__all__ = [
    "MatchingConfig",
    "ProjectConfig",
    "TokenGranularity",
    "build_matching_config",
    "read_config",
    "read_matching_config",
    "write_config",
]
