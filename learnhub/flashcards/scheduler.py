"""
Spaced repetition scheduling.

A four-button variant of SM-2: every review maps the current card state and a
quality rating to the next state. Nothing here touches the database.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import IntEnum
from typing import Optional

from learnhub.flashcards.exceptions import InvalidQualityError

EASE_DECIMALS = 4


class Quality(IntEnum):
    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3


@dataclass(frozen=True)
class SchedulerParameters:
    initial_ease: float = 2.5
    min_ease: float = 1.3
    lapse_ease_penalty: float = 0.2
    hard_ease_penalty: float = 0.15
    easy_ease_bonus: float = 0.15
    hard_interval_multiplier: float = 1.2
    easy_interval_multiplier: float = 1.3
    first_interval_days: int = 1
    second_interval_days: int = 6
    maximum_interval_days: int = 36500

    def __post_init__(self):
        if self.min_ease <= 0:
            raise ValueError("min_ease must be positive")
        if self.initial_ease < self.min_ease:
            raise ValueError("initial_ease must not be below min_ease")
        if self.first_interval_days < 1 or self.second_interval_days < 1:
            raise ValueError("ladder intervals must be at least one day")
        if self.maximum_interval_days < max(self.first_interval_days, self.second_interval_days):
            raise ValueError("maximum_interval_days must cover the ladder intervals")
        if self.hard_interval_multiplier <= 0 or self.easy_interval_multiplier <= 0:
            raise ValueError("interval multipliers must be positive")

    @classmethod
    def from_settings(cls, settings) -> "SchedulerParameters":
        return cls(
            initial_ease=settings.SRS_INITIAL_EASE,
            min_ease=settings.SRS_MIN_EASE,
            lapse_ease_penalty=settings.SRS_LAPSE_EASE_PENALTY,
            hard_ease_penalty=settings.SRS_HARD_EASE_PENALTY,
            easy_ease_bonus=settings.SRS_EASY_EASE_BONUS,
            hard_interval_multiplier=settings.SRS_HARD_INTERVAL_MULTIPLIER,
            easy_interval_multiplier=settings.SRS_EASY_INTERVAL_MULTIPLIER,
            first_interval_days=settings.SRS_FIRST_INTERVAL_DAYS,
            second_interval_days=settings.SRS_SECOND_INTERVAL_DAYS,
            maximum_interval_days=settings.SRS_MAXIMUM_INTERVAL_DAYS,
        )


DEFAULT_PARAMETERS = SchedulerParameters()


@dataclass(frozen=True)
class SRSState:
    ease_factor: float
    interval_days: int
    repetitions: int
    due_at: datetime
    last_reviewed_at: Optional[datetime] = None

    @classmethod
    def initial(cls, now: datetime, params: SchedulerParameters = DEFAULT_PARAMETERS) -> "SRSState":
        """State of a freshly created card: never scheduled, due immediately."""
        return cls(
            ease_factor=params.initial_ease,
            interval_days=0,
            repetitions=0,
            due_at=now,
            last_reviewed_at=None,
        )


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Goes through the float's shortest repr so 19.5 rounds to 20 even when the
    binary product is a hair below it.
    """
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_quality(quality) -> Quality:
    # bool is an int subclass; True must not sneak in as Hard
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    try:
        return Quality(quality)
    except ValueError:
        raise InvalidQualityError(quality) from None


def _ladder_interval(state: SRSState, ease: float, params: SchedulerParameters) -> float:
    if state.repetitions <= 0:
        return params.first_interval_days
    if state.repetitions == 1:
        return params.second_interval_days
    return state.interval_days * ease


def _whole_days(value: float, params: SchedulerParameters) -> int:
    return min(params.maximum_interval_days, max(1, round_half_up(value)))


def advance(
    state: SRSState,
    quality: int,
    now: datetime,
    params: SchedulerParameters = DEFAULT_PARAMETERS,
) -> SRSState:
    """
    Compute the state that follows a review.

    Args:
        state: Current scheduling state of the card
        quality: Recall quality
            0 = Again (failed recall, resets progress)
            1 = Hard
            2 = Good
            3 = Easy
        now: Review time; the next due date is counted from here
        params: Scheduler constants

    Returns:
        The complete next SRSState. The input is left untouched.

    Raises:
        InvalidQualityError: quality is not one of 0-3
    """
    quality = validate_quality(quality)
    ease = max(params.min_ease, state.ease_factor)

    if quality == Quality.AGAIN:
        new_ease = max(params.min_ease, ease - params.lapse_ease_penalty)
        new_interval = 1
        new_repetitions = 0
    elif quality == Quality.HARD:
        if state.repetitions <= 0:
            new_interval = params.first_interval_days
        else:
            new_interval = _whole_days(state.interval_days * params.hard_interval_multiplier, params)
        new_ease = max(params.min_ease, ease - params.hard_ease_penalty)
        new_repetitions = state.repetitions + 1
    elif quality == Quality.GOOD:
        new_interval = _whole_days(_ladder_interval(state, ease, params), params)
        new_ease = ease
        new_repetitions = state.repetitions + 1
    else:
        new_interval = _whole_days(_ladder_interval(state, ease, params) * params.easy_interval_multiplier, params)
        new_ease = ease + params.easy_ease_bonus
        new_repetitions = state.repetitions + 1

    return replace(
        state,
        ease_factor=round(new_ease, EASE_DECIMALS),
        interval_days=new_interval,
        repetitions=max(0, new_repetitions),
        due_at=now + timedelta(days=new_interval),
        last_reviewed_at=now,
    )


def is_mastered(interval_days: Optional[int], repetitions: Optional[int]) -> bool:
    """A card counts as mastered at a 21 day interval, or 3+ reps with a week-long interval."""
    interval_days = interval_days or 0
    repetitions = repetitions or 0
    if interval_days >= 21:
        return True
    return repetitions >= 3 and interval_days >= 7


def mastery_percentage(mastered: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(mastered * 100 / total)
