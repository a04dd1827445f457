"""
Rating calibration against a reference engine.

The candidate engine plays a fixed number of games as white against the
reference engine (Stockfish) at several skill levels, each with an assumed
rating. The per-level scores are folded into one rating estimate with a
confidence half-width that shrinks with the number of games played.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence

from .context import MatchContext
from .engine import EngineError, EngineProcess, find_reference_engine, get_friendly_stockfish_hint
from .match import MatchLoop
from .models import CalibrationResult, CalibrationSample, CalibrationSettings, EngineSpec

logger = logging.getLogger(__name__)

MIN_SKILL_LEVEL = 0
MAX_SKILL_LEVEL = 20
SKILL_OPTION = "Skill Level"


class CalibrationError(EngineError):
    """Base class for calibration failures."""
    pass


class InvalidSkillLevel(CalibrationError):
    """The reference engine rejected the requested skill level."""
    pass


class StockfishNotFound(CalibrationError):
    """No reference engine is available."""
    pass


def estimate_rating(samples: Sequence[CalibrationSample]) -> float:
    """
    Score-weighted average of the assumed ratings.

    Levels where the candidate scored nothing contribute nothing; if it scored
    nothing anywhere the estimate is the lowest assumed rating. The result is
    therefore always between the lowest and highest assumed rating.

    Args:
        samples: One sample per calibration level

    Returns:
        Estimated rating
    """
    if not samples:
        raise ValueError("Cannot estimate a rating without calibration samples")

    total_score = sum(sample.score for sample in samples)
    if total_score == 0:
        return float(min(sample.assumed_rating for sample in samples))

    weighted = sum(sample.score * sample.assumed_rating for sample in samples)
    return weighted / total_score


def confidence_half_width(total_games: int, k: float = 200.0) -> float:
    """Half-width of the confidence interval: ``k / sqrt(total_games)``."""
    if total_games <= 0:
        raise ValueError("Confidence needs at least one played game")
    return k / math.sqrt(total_games)


async def configure_skill_level(engine: EngineProcess, level: int) -> None:
    """
    Set the reference engine's skill level and wait until it is ready.

    Raises:
        InvalidSkillLevel: If the level is out of range or the engine reports
            an error before ``readyok``
    """
    if not MIN_SKILL_LEVEL <= level <= MAX_SKILL_LEVEL:
        raise InvalidSkillLevel(
            f"Skill level {level} outside {MIN_SKILL_LEVEL}-{MAX_SKILL_LEVEL}"
        )

    await engine.set_option(SKILL_OPTION, level)
    await engine.send_line("isready")
    for line in await engine.wait_for("readyok"):
        if line.startswith("No such option") or line.lower().startswith("error"):
            raise InvalidSkillLevel(f"Engine {engine.name} rejected skill level {level}: {line}")

    logger.debug(f"Engine {engine.name} set to skill level {level}")


class Calibrator:
    """
    Estimates an engine's rating from games against the reference engine.

    Each level uses a fresh pair of processes; games within a level reuse
    them.
    """

    def __init__(
        self,
        engines: List[EngineSpec],
        context: Optional[MatchContext] = None,
        settings: Optional[CalibrationSettings] = None,
        on_level_complete: Optional[Callable[[CalibrationSample], None]] = None,
    ):
        """
        Initialize the calibrator.

        Args:
            engines: Known engines, searched for the reference engine
            context: Sinks and configuration for this run
            settings: Levels, ratings and game counts (defaults to config.calibration)
            on_level_complete: Called with each finished level's sample
        """
        self.engines = engines
        self.context = context or MatchContext.quiet()
        self.settings = settings or self.context.config.calibration
        self.on_level_complete = on_level_complete

    def find_reference(self) -> EngineSpec:
        """
        Locate the reference engine.

        Raises:
            StockfishNotFound: If no engine matches the reference name
        """
        reference = find_reference_engine(self.engines, self.settings.reference_name)
        if reference is None:
            raise StockfishNotFound(get_friendly_stockfish_hint())
        return reference

    async def calibrate(self, candidate: EngineSpec) -> CalibrationResult:
        """
        Run the full calibration for ``candidate``.

        Returns:
            Rating estimate with confidence half-width and per-level samples

        Raises:
            StockfishNotFound: If the reference engine is missing
            CalibrationError: If the candidate is the reference engine itself
            InvalidSkillLevel: If a level cannot be configured
            EngineError: If an engine fails during a game
        """
        reference = self.find_reference()
        if reference.path == candidate.path:
            raise CalibrationError(f"Cannot calibrate {candidate.name} against itself")

        logger.info(f"Calibrating {candidate.name} against {reference.name}: "
                    f"{len(self.settings.levels)} levels x {self.settings.games_per_level} games")

        samples: List[CalibrationSample] = []
        for level, rating in zip(self.settings.levels, self.settings.level_ratings):
            sample = await self._play_level(candidate, reference, level, rating)
            samples.append(sample)
            logger.info(f"Level {level} ({rating}): {sample.wins}W-{sample.draws}D-{sample.losses}L, "
                        f"score {sample.score:.2f}")
            if self.on_level_complete:
                self.on_level_complete(sample)

        total_games = sum(sample.games_played for sample in samples)
        result = CalibrationResult(
            engine=candidate,
            estimated_rating=estimate_rating(samples),
            confidence=confidence_half_width(total_games, self.settings.confidence_k),
            samples=samples,
        )
        logger.info(f"Calibration finished: {result}")
        return result

    async def _play_level(
        self,
        candidate: EngineSpec,
        reference: EngineSpec,
        level: int,
        rating: int,
    ) -> CalibrationSample:
        sample = CalibrationSample(level=level, assumed_rating=rating)
        loop = MatchLoop.from_specs(
            candidate, reference, self.context, move_time_ms=self.settings.move_time_ms
        )
        async with loop:
            await loop.initialize()
            await configure_skill_level(loop.black, level)
            for _ in range(self.settings.games_per_level):
                sample.add_result(await loop.play_game(), candidate_is_white=True)
        return sample
