"""Command line interface for the rating and scoring engine."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence

import polars as pl

from ..config import get_config
from ..utils_date import recent_seasons
from .analytics import KellyCriterion
from .cache import RatingCache
from .configuration import (
    EngineConfig,
    InvalidConfiguration,
    load_engine_config,
    validate_engine_config,
)
from .logging import configure_logging
from .models import GameResult, ratings_to_frame, results_from_frame
from .pipeline import MatchupPredictor, UnknownTeamError
from .utils import parse_market_odds

logger = logging.getLogger(__name__)

CommandHandler = Callable[[EngineConfig, argparse.Namespace], int]


@dataclasses.dataclass(slots=True)
class Subcommand:
    """Container describing a CLI sub-command."""

    name: str
    help: str
    configure: Callable[[argparse.ArgumentParser], None]
    handler: CommandHandler

    def add_to_parser(self, subparsers, parent: argparse.ArgumentParser) -> argparse.ArgumentParser:
        parser = subparsers.add_parser(self.name, parents=[parent], help=self.help)
        self.configure(parser)
        parser.set_defaults(handler=self.handler, command=self.name)
        return parser


class SubcommandApp:
    """Registry that wires handlers into an :class:`argparse` parser."""

    def __init__(self, description: str | None = None) -> None:
        self._commands: list[Subcommand] = []
        self._description = description

    def command(
        self,
        name: str,
        *,
        help: str,
        configure: Callable[[argparse.ArgumentParser], None],
    ) -> Callable[[CommandHandler], CommandHandler]:
        def _decorator(handler: CommandHandler) -> CommandHandler:
            self._commands.append(
                Subcommand(name=name, help=help, configure=configure, handler=handler)
            )
            return handler

        return _decorator

    def build_parser(self) -> argparse.ArgumentParser:
        parent = argparse.ArgumentParser(add_help=False)
        parent.add_argument("--config-file", default=None, help="Engine YAML configuration")
        parent.add_argument(
            "--config-environment", default=None, help="Configuration environment overlay"
        )
        parent.add_argument("--log-level", default=None, help="Logging level")
        parser = argparse.ArgumentParser(prog="nhlscore", description=self._description)
        subparsers = parser.add_subparsers(dest="command", required=True)
        for command in self._commands:
            command.add_to_parser(subparsers, parent)
        return parser


APP = SubcommandApp("NHL ratings, outcome odds and correct-score probabilities")


def _read_results(path: str) -> List[GameResult]:
    source = Path(path)
    if not source.exists():
        raise SystemExit(f"results file not found: {source}")
    if source.suffix.lower() == ".parquet":
        frame = pl.read_parquet(source)
    else:
        frame = pl.read_csv(source, try_parse_dates=True)
    if "date" in frame.columns:
        frame = frame.sort("date", maintain_order=True)
    return results_from_frame(frame)


def _add_results_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--results", required=True, help="CSV or Parquet file of game results")
    parser.add_argument(
        "--seasons",
        nargs="*",
        default=None,
        help="Seasons to replay (default: the most recent NHLSCORE_SEASONS_BACK seasons)",
    )


def _add_matchup_arguments(parser: argparse.ArgumentParser) -> None:
    _add_results_argument(parser)
    parser.add_argument("--home", required=True, help="Home team abbreviation")
    parser.add_argument("--away", required=True, help="Away team abbreviation")


def _select_seasons(results: List[GameResult], seasons: Sequence[str] | None) -> List[str]:
    if seasons:
        return list(seasons)
    if not results:
        return []
    latest = max(result.date for result in results)
    return recent_seasons(get_config().seasons_back, today=latest)


def _predictor(config: EngineConfig, args: argparse.Namespace) -> MatchupPredictor:
    results = _read_results(args.results)
    seasons = _select_seasons(results, args.seasons)
    wanted = set(seasons)
    # untagged games are always replayed
    results = [result for result in results if not result.season or result.season in wanted]
    logger.info("Replaying %d games from seasons %s", len(results), ", ".join(seasons) or "-")
    return MatchupPredictor(
        results,
        config=config,
        cache=RatingCache(get_config().rating_cache_size),
        seasons=seasons if args.seasons else None,
    )


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: _jsonable(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    return value


def _emit(payload: Any) -> None:
    print(json.dumps(_jsonable(payload), indent=2))


def _configure_ratings_parser(parser: argparse.ArgumentParser) -> None:
    _add_results_argument(parser)
    parser.add_argument(
        "--format", choices=("json", "table"), default="json", help="Output format"
    )


@APP.command("ratings", help="Replay results and print team ratings", configure=_configure_ratings_parser)
def _cmd_ratings(config: EngineConfig, args: argparse.Namespace) -> int:
    table = _predictor(config, args).ratings()
    if args.format == "table":
        with pl.Config(tbl_rows=len(table) or 1):
            print(ratings_to_frame(table))
    else:
        _emit(table)
    return 0


@APP.command("predict", help="Win probabilities and fair odds", configure=_add_matchup_arguments)
def _cmd_predict(config: EngineConfig, args: argparse.Namespace) -> int:
    _emit(_predictor(config, args).predict_outcome(args.home, args.away))
    return 0


def _configure_scores_parser(parser: argparse.ArgumentParser) -> None:
    _add_matchup_arguments(parser)
    parser.add_argument(
        "--model",
        choices=("poisson", "bivariate-poisson", "negative-binomial"),
        default=None,
        help="Score distribution model",
    )
    parser.add_argument("--max-goals", type=int, default=None, help="Goals per side in the grid")
    parser.add_argument("--correlation", type=float, default=None, help="Bivariate shared rate")
    parser.add_argument("--dispersion", type=float, default=None, help="Negative binomial shape")
    parser.add_argument("--taper", action="store_true", help="Taper implausible blowout scores")
    parser.add_argument("--market-odds", default=None, help="JSON object of decimal odds by score")
    parser.add_argument("--top", type=int, default=None, help="Number of ranked bets")


@APP.command("scores", help="Correct-score probabilities and value bets", configure=_configure_scores_parser)
def _cmd_scores(config: EngineConfig, args: argparse.Namespace) -> int:
    overrides: Dict[str, Any] = config.distribution.model_dump()
    for key, value in (
        ("model", args.model),
        ("max_goals_per_side", args.max_goals),
        ("correlation", args.correlation),
        ("dispersion", args.dispersion),
    ):
        if value is not None:
            overrides[key] = value
    if args.taper:
        overrides["apply_tapering"] = True
    market_odds = parse_market_odds(args.market_odds) if args.market_odds else None
    prediction = _predictor(config, args).predict_scores(
        args.home,
        args.away,
        market_odds=market_odds,
        options=overrides,
        top_n=args.top,
    )
    _emit(prediction)
    return 0


def _configure_kelly_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--probability", type=float, required=True, help="Win probability")
    parser.add_argument("--odds", type=float, required=True, help="Decimal odds")
    parser.add_argument("--divider", type=float, default=None, help="Fractional Kelly divider")
    parser.add_argument("--bankroll", type=float, default=None, help="Bankroll to size against")


@APP.command("kelly", help="Kelly stake for a single bet", configure=_configure_kelly_parser)
def _cmd_kelly(config: EngineConfig, args: argparse.Namespace) -> int:
    divider = args.divider if args.divider is not None else config.analytics.kelly_divider
    bankroll = args.bankroll if args.bankroll is not None else config.analytics.bankroll
    try:
        fraction = KellyCriterion.fraction(args.probability, args.odds, divider=divider)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    _emit(
        {
            "probability": args.probability,
            "odds": args.odds,
            "divider": divider,
            "kelly_fraction": fraction,
            "stake": round(bankroll * fraction, 2),
        }
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    return APP.build_parser()


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_config()
    level = args.log_level or ("DEBUG" if settings.verbose else settings.log_level)
    configure_logging(level)

    base_path = args.config_file or settings.engine_config_path
    try:
        config = load_engine_config(base_path=base_path, environment=args.config_environment)
        warnings = validate_engine_config(config)
    except (InvalidConfiguration, FileNotFoundError) as exc:
        raise SystemExit(str(exc)) from exc
    for message in warnings:
        logger.warning("[config-warning] %s", message)

    handler: CommandHandler = args.handler
    try:
        return handler(config, args)
    except UnknownTeamError as exc:
        raise SystemExit(str(exc)) from exc
    except InvalidConfiguration as exc:
        raise SystemExit(str(exc)) from exc


__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
