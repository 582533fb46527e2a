"""Solo race rules that are independent from HTTP and DB.

Rule of thumb:
- OK: timing windows, opponent progress, reward math, pure transformations.
- Not OK: touching DB sessions, repositories, FastAPI, datetime.now(), etc.
  Callers pass ``now`` (and a random generator where needed) in.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

import numpy as np

MAX_LIVES = 3
QUESTIONS_PER_GAME = 10
DEFAULT_REVIEW_TIME_SECONDS = 3
LEVELS_PER_WORLD = 15
REQUIRED_PRODUCT_COUNT = 3  # car, character, background

SECONDS_PER_RECHARGE = 900

# ==============================================================================
# ==== Timing ==================================================================
# ==============================================================================


def elapsed_seconds(since: datetime, now: datetime) -> float:
    return max((now - since).total_seconds(), 0.0)


def compute_machine_position(
    total_questions: int,
    time_per_question: int,
    review_time_seconds: int,
    elapsed: float,
) -> int:
    """Opponent position as a pure function of the elapsed race time.

    The opponent needs ``time_per_question + review_time_seconds`` per
    question, so it crosses the line after
    ``total_questions * (time_per_question + review_time_seconds)`` seconds.
    """
    total_estimated = total_questions * (time_per_question + review_time_seconds)
    if total_estimated <= 0:
        return total_questions
    position = math.floor(total_questions * max(elapsed, 0.0) / total_estimated)
    return min(max(position, 0), total_questions)


def is_answer_timed_out(
    game_started_at: datetime,
    last_answer_time: Optional[datetime],
    time_per_question: int,
    review_time_seconds: int,
    now: datetime,
) -> bool:
    """True when the answer window for the current question has closed.

    The first question is timed from the start of the race; later ones from
    the previous answer, plus the review pause shown after it.
    """
    if last_answer_time is None:
        reference = game_started_at
        allowed = time_per_question
    else:
        reference = last_answer_time
        allowed = time_per_question + review_time_seconds
    return (now - reference).total_seconds() > allowed


def review_time_remaining(
    last_answer_time: Optional[datetime],
    review_time_seconds: int,
    now: datetime,
) -> float:
    """Seconds left before the next question may be requested (0 when free)."""
    if last_answer_time is None:
        return 0.0
    remaining = review_time_seconds - (now - last_answer_time).total_seconds()
    return max(remaining, 0.0)


# ==============================================================================
# ==== Progress and rewards ====================================================
# ==============================================================================


def advance_player_position(position: int, total_questions: int, double_progress: bool) -> int:
    step = 2 if double_progress else 1
    return min(total_questions, position + step)


def is_last_level_of_world(level_number: int) -> bool:
    return level_number == LEVELS_PER_WORLD


def is_first_completion(level_id: int, last_level_id: int) -> bool:
    return last_level_id < level_id


def should_open_world_chest(level_number: int, level_id: int, last_level_id: int) -> bool:
    """The world chest opens once: the world's last level, beaten for the first time."""
    return is_last_level_of_world(level_number) and is_first_completion(level_id, last_level_id)


def calculate_level_reward(
    world_id: int,
    first_completion: bool,
    rng: np.random.Generator,
) -> int:
    """Coins for beating a level.

    First completion pays ``world_id * 100`` +/-20%; a replay pays a tenth of
    that +/-1%. Never less than one coin.
    """
    base_reward = world_id * 100
    if first_completion:
        variation = rng.uniform(-0.2, 0.2)
        coins = int(base_reward * (1 + variation))
    else:
        variation = rng.uniform(-0.01, 0.01)
        coins = int((base_reward // 10) * (1 + variation))
    return max(coins, 1)


# ==============================================================================
# ==== Energy ==================================================================
# ==============================================================================


def keep_recharge_progress(last_consumption_date: datetime, now: datetime) -> datetime:
    """New consumption timestamp that keeps the partial recharge already earned."""
    seconds_passed = int((now - last_consumption_date).total_seconds())
    progress_seconds = seconds_passed % SECONDS_PER_RECHARGE
    return now - timedelta(seconds=progress_seconds)
