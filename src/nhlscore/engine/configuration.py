"""Layered configuration for the rating and scoring engine."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    Literal,
    Mapping,
    MutableMapping,
    Sequence,
)

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

ENVIRONMENT_VARIABLE = "NHLSCORE_ENGINE_ENV"
EXTRA_CONFIG_VARIABLE = "NHLSCORE_ENGINE_CONFIG"
ENV_OVERRIDE_PREFIX = "NHLSCORE_ENGINE__"
DEFAULT_CONFIG_PATH = Path("config/engine.yaml")

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .distributions import ScoreDistributionEngine
    from .expected_goals import ExpectedGoalsEstimator
    from .form import RecentFormAggregator
    from .probabilities import ProbabilityConverter
    from .ratings import RatingCalculator

logger = logging.getLogger(__name__)

DistributionModel = Literal["poisson", "bivariate-poisson", "negative-binomial"]


class InvalidConfiguration(ValueError):
    """Raised when engine configuration or caller-supplied options are invalid."""


class RatingConfig(BaseModel):
    """Constants driving the incremental rating calculator."""

    base_rating: float = 1500.0
    k_factor: float = 20.0
    home_advantage: float = 60.0
    time_scale_days: float = 365.0
    extra_period_factor: float = 0.75


class FormConfig(BaseModel):
    """Window and decay settings for recent scoring form."""

    lookback_games: int = 20
    use_time_decay: bool = True
    decay_days: float = 21.0


class ExpectedGoalsConfig(BaseModel):
    """Coefficients mapping form and rating gaps to scoring rates."""

    home_goal_advantage: float = 0.28
    rating_goal_scale: float = 0.00125
    special_teams_scale: float = 1000.0
    minimum_lambda: float = 0.05


class DistributionOptions(BaseModel):
    """Validated options for the score distribution engine.

    Field names are snake_case; camelCase aliases (``maxGoalsPerSide``,
    ``applyTapering`` ...) are accepted so host payloads validate as-is.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    model: DistributionModel = "poisson"
    max_goals_per_side: int = Field(default=8, ge=1, le=30)
    correlation: float = Field(default=0.1, ge=0.0, allow_inf_nan=False)
    dispersion: float = Field(default=2.0, gt=0.0, allow_inf_nan=False)
    apply_tapering: bool = False
    taper_threshold: int = Field(default=5, ge=0)
    taper_factor: float = Field(default=0.7, gt=0.0, le=1.0)


class AnalyticsConfig(BaseModel):
    """Defaults for value-bet ranking and stake sizing."""

    top_n: int = 10
    value_threshold: float = 1.0
    kelly_divider: float = 1.0
    bankroll: float = 1_000.0


class EngineConfig(BaseModel):
    """Aggregate configuration for the engine."""

    environment: str = "default"
    rating: RatingConfig = Field(default_factory=RatingConfig)
    form: FormConfig = Field(default_factory=FormConfig)
    expected_goals: ExpectedGoalsConfig = Field(default_factory=ExpectedGoalsConfig)
    distribution: DistributionOptions = Field(default_factory=DistributionOptions)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(token) for token in error.get("loc", ()))
        parts.append(f"{location or '<root>'}: {error.get('msg')}")
    return "; ".join(parts)


def coerce_distribution_options(
    value: DistributionOptions | Mapping[str, Any] | None,
) -> DistributionOptions:
    """Return ``value`` as :class:`DistributionOptions`.

    ``None`` yields the defaults. Unknown model names, unknown keys and
    out-of-range values raise :class:`InvalidConfiguration`.
    """

    if value is None:
        return DistributionOptions()
    if isinstance(value, DistributionOptions):
        return value
    if not isinstance(value, Mapping):
        raise InvalidConfiguration(
            f"Distribution options must be a mapping, got {type(value).__name__}"
        )
    try:
        return DistributionOptions.model_validate(dict(value))
    except ValidationError as exc:
        raise InvalidConfiguration(
            f"Invalid distribution options: {_describe_validation_error(exc)}"
        ) from exc


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise TypeError(f"Configuration at {path} must be a mapping")
    return dict(data)


def _merge_layers(base: Dict[str, Any], layer: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in layer.items():
        if (
            key in merged
            and isinstance(merged[key], Mapping)
            and isinstance(value, Mapping)
        ):
            merged[key] = _merge_layers(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def _resolve_env_tokens(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda match: os.getenv(match.group(1), ""), value)
    if isinstance(value, Mapping):
        return {k: _resolve_env_tokens(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_resolve_env_tokens(item) for item in value]
    return value


def _coerce_env_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        return raw


def _set_nested(mapping: MutableMapping[str, Any], path: Iterable[str], value: Any) -> None:
    segments = list(path)
    if not segments:
        return
    head, *tail = segments
    key = head.lower().replace("-", "_")
    if not tail:
        mapping[key] = value
        return
    child = mapping.get(key)
    if not isinstance(child, MutableMapping):
        child = {}
    else:
        child = dict(child)
    mapping[key] = child
    _set_nested(child, tail, value)


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    updated = dict(data)
    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_OVERRIDE_PREFIX):
            continue
        suffix = key[len(ENV_OVERRIDE_PREFIX) :]
        path = [segment for segment in suffix.split("__") if segment]
        if not path:
            continue
        _set_nested(updated, path, _coerce_env_value(raw_value))
    return updated


def load_engine_config(
    *,
    base_path: str | os.PathLike[str] | None = None,
    environment: str | None = None,
    extra_paths: Sequence[str | os.PathLike[str]] | None = None,
) -> EngineConfig:
    """Load layered configuration for the engine.

    The loader merges ``config/engine.yaml`` with optional environment-specific
    overrides (``config/engine.<env>.yaml``), additional override files, and
    environment variable overrides that use the ``NHLSCORE_ENGINE__`` prefix.
    An explicit ``base_path`` must exist; when no path is given and the default
    file is absent the built-in defaults are used.
    """

    config_path = Path(base_path) if base_path is not None else DEFAULT_CONFIG_PATH
    if base_path is None and not config_path.exists():
        logger.debug("No engine configuration at %s; using defaults", config_path)
        data: Dict[str, Any] = {}
    else:
        data = _load_yaml(config_path)

    env_name = environment or os.getenv(ENVIRONMENT_VARIABLE) or data.get("environment")
    if isinstance(env_name, str):
        env_path = config_path.with_name(f"{config_path.stem}.{env_name}{config_path.suffix}")
        if env_path.exists():
            data = _merge_layers(data, _load_yaml(env_path))
        data["environment"] = env_name

    merged = dict(data)
    override_sources: list[Path] = []
    if extra_paths:
        override_sources.extend(Path(path) for path in extra_paths)
    env_overrides = os.getenv(EXTRA_CONFIG_VARIABLE)
    if env_overrides:
        override_sources.extend(Path(token) for token in env_overrides.split(os.pathsep) if token)

    for override in override_sources:
        if override.exists():
            merged = _merge_layers(merged, _load_yaml(override))
        else:
            logger.warning("Configuration override %s does not exist; skipping", override)

    merged = _apply_env_overrides(merged)
    merged = _resolve_env_tokens(merged)

    try:
        return EngineConfig.model_validate(merged)
    except ValidationError as exc:
        raise InvalidConfiguration(
            f"Invalid engine configuration: {_describe_validation_error(exc)}"
        ) from exc


def validate_engine_config(config: EngineConfig) -> list[str]:
    """Validate an :class:`EngineConfig` instance.

    Returns a list of warning messages and raises
    :class:`InvalidConfiguration` if any fatal issues are detected.
    """

    errors: list[str] = []
    warnings: list[str] = []

    rating = config.rating
    if rating.k_factor <= 0:
        errors.append("rating.k_factor must be greater than zero")
    if rating.time_scale_days <= 0:
        errors.append("rating.time_scale_days must be greater than zero")
    if not 0 < rating.extra_period_factor <= 1:
        errors.append("rating.extra_period_factor must be within (0, 1]")
    if rating.home_advantage < 0:
        warnings.append("rating.home_advantage is negative; the home side is penalised")

    form = config.form
    if form.lookback_games <= 0:
        errors.append("form.lookback_games must be greater than zero")
    if form.decay_days <= 0:
        errors.append("form.decay_days must be greater than zero")
    elif form.lookback_games > 82:
        warnings.append("form.lookback_games exceeds a regular season; form will be stale")

    expected = config.expected_goals
    if expected.special_teams_scale <= 0:
        errors.append("expected_goals.special_teams_scale must be greater than zero")
    if expected.minimum_lambda <= 0:
        errors.append("expected_goals.minimum_lambda must be greater than zero")

    distribution = config.distribution
    if distribution.apply_tapering and distribution.taper_threshold >= distribution.max_goals_per_side:
        warnings.append(
            "distribution.taper_threshold is at or above max_goals_per_side; tapering has no effect"
        )

    analytics = config.analytics
    if analytics.top_n <= 0:
        errors.append("analytics.top_n must be greater than zero")
    if analytics.value_threshold < 1.0:
        warnings.append(
            "analytics.value_threshold is below 1.0; negative expected value bets will be ranked"
        )
    if not 1.0 <= analytics.kelly_divider <= 10.0:
        errors.append("analytics.kelly_divider must be within [1, 10]")
    if analytics.bankroll <= 0:
        errors.append("analytics.bankroll must be greater than zero")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise InvalidConfiguration(f"Configuration validation failed:\n{bullet_list}")

    return warnings


def create_rating_calculator(config: EngineConfig) -> "RatingCalculator":
    """Build a :class:`RatingCalculator` from configuration."""

    from .ratings import RatingCalculator

    rating = config.rating
    return RatingCalculator(
        base_rating=rating.base_rating,
        k_factor=rating.k_factor,
        home_advantage=rating.home_advantage,
        time_scale_days=rating.time_scale_days,
        extra_period_factor=rating.extra_period_factor,
    )


def create_probability_converter(config: EngineConfig) -> "ProbabilityConverter":
    """Build a :class:`ProbabilityConverter` sharing the rating home bonus."""

    from .probabilities import ProbabilityConverter

    return ProbabilityConverter(home_advantage=config.rating.home_advantage)


def create_form_aggregator(config: EngineConfig) -> "RecentFormAggregator":
    """Build a :class:`RecentFormAggregator` from configuration."""

    from .form import RecentFormAggregator

    form = config.form
    return RecentFormAggregator(
        lookback_games=form.lookback_games,
        use_time_decay=form.use_time_decay,
        decay_days=form.decay_days,
    )


def create_expected_goals_estimator(config: EngineConfig) -> "ExpectedGoalsEstimator":
    """Build an :class:`ExpectedGoalsEstimator` from configuration."""

    from .expected_goals import ExpectedGoalsEstimator

    expected = config.expected_goals
    return ExpectedGoalsEstimator(
        home_goal_advantage=expected.home_goal_advantage,
        rating_goal_scale=expected.rating_goal_scale,
        special_teams_scale=expected.special_teams_scale,
        minimum_lambda=expected.minimum_lambda,
    )


def create_distribution_engine(config: EngineConfig) -> "ScoreDistributionEngine":
    """Build a :class:`ScoreDistributionEngine` with configured default options."""

    from .distributions import ScoreDistributionEngine

    return ScoreDistributionEngine(default_options=config.distribution)


__all__ = [
    "AnalyticsConfig",
    "DistributionModel",
    "DistributionOptions",
    "EngineConfig",
    "ExpectedGoalsConfig",
    "FormConfig",
    "InvalidConfiguration",
    "RatingConfig",
    "coerce_distribution_options",
    "create_distribution_engine",
    "create_expected_goals_estimator",
    "create_form_aggregator",
    "create_probability_converter",
    "create_rating_calculator",
    "load_engine_config",
    "validate_engine_config",
]
