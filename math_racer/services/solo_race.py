"""Solo race use cases: start, status, answer, power-ups and abandon.

- Every entry point on an existing race goes through ``_race`` so the
  guards run in the same order: not found, owner, finished.
- Operations on a running race are serialized with a per-race lock.
- The opponent position is recomputed from the clock on every touch.
"""

import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

import numpy as np

from math_racer.domain.equation_generator import EquationGenerator
from math_racer.domain.exceptions import (
    BusinessException,
    NotFoundException,
    ValidationException,
)
from math_racer.domain.race_rules import (
    DEFAULT_REVIEW_TIME_SECONDS,
    MAX_LIVES,
    QUESTIONS_PER_GAME,
    REQUIRED_PRODUCT_COUNT,
    advance_player_position,
    calculate_level_reward,
    compute_machine_position,
    elapsed_seconds,
    is_answer_timed_out,
    is_first_completion,
    review_time_remaining,
    should_open_world_chest,
)
from math_racer.models.dc_models import (
    DifficultyParamsModel,
    LevelModel,
    PowerUpTypeModel,
    PowerUpUsageResultModel,
    RaceGameModel,
    RaceStatusModel,
    RaceStatusResultModel,
    SoloAnswerResultModel,
    WorldModel,
)
from math_racer.race_lock_manager import RaceLockManager


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_difficulty_params(level: LevelModel, world: WorldModel) -> DifficultyParamsModel:
    """Merge the level (shape of the expression) with its world (ranges and time)."""
    return DifficultyParamsModel(
        term_count=level.terms_count,
        variable_count=level.variables_count,
        expected_result=level.result_type,
        operations=world.operations,
        options_count=world.options_count,
        option_range_min=world.option_range_min,
        option_range_max=world.option_range_max,
        number_range_min=world.number_range_min,
        number_range_max=world.number_range_max,
        time_per_equation=world.time_per_equation,
    )


class SoloRaceEngine:
    def __init__(
        self,
        player_repository,
        energy_repository,
        level_repository,
        world_repository,
        product_repository,
        wildcard_repository,
        game_repository,
        generator: Optional[EquationGenerator] = None,
        lock_manager: Optional[RaceLockManager] = None,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[np.random.Generator] = None,
        questions_per_game: int = QUESTIONS_PER_GAME,
        review_time_seconds: int = DEFAULT_REVIEW_TIME_SECONDS,
    ):
        self.player_repository = player_repository
        self.energy_repository = energy_repository
        self.level_repository = level_repository
        self.world_repository = world_repository
        self.product_repository = product_repository
        self.wildcard_repository = wildcard_repository
        self.game_repository = game_repository
        self.rng = rng if rng is not None else np.random.default_rng()
        self.generator = generator if generator is not None else EquationGenerator(self.rng)
        self.lock_manager = lock_manager if lock_manager is not None else RaceLockManager()
        self.clock = clock
        self.questions_per_game = questions_per_game
        self.review_time_seconds = review_time_seconds

    # ==============================================================================
    # ==== Use cases ===============================================================
    # ==============================================================================

    async def start(self, player_uid: str, level_id: int) -> RaceGameModel:
        """Start a new solo race on a level

        Args:
            player_uid (str): External id of the player
            level_id (int): Level to race on

        Returns:
            RaceGameModel: The stored race, questions included
        """
        player = await self.player_repository.read_by_uid(player_uid)
        if player is None:
            raise NotFoundException(f"Player with uid {player_uid} was not found.")

        if not await self.energy_repository.has_energy(player.id):
            logging.warning(f"Player {player.id} tried to start a race without energy")
            raise BusinessException("The player has no energy left to play.")

        level = await self.level_repository.read_by_id(level_id)
        if level is None:
            raise NotFoundException(f"Level with id {level_id} was not found.")

        worlds = await self.world_repository.read_all()
        world = next((w for w in worlds if w.id == level.world_id), None)
        if world is None:
            raise NotFoundException(f"World with id {level.world_id} was not found.")

        player_products = await self.product_repository.read_active_products(player.id)
        if len(player_products) < REQUIRED_PRODUCT_COUNT:
            raise BusinessException(
                "The player must have an active car, character and background."
            )
        machine_products = await self.product_repository.read_machine_products()
        if len(machine_products) < REQUIRED_PRODUCT_COUNT:
            raise BusinessException("Could not equip the opponent with a full set of products.")

        params = build_difficulty_params(level, world)
        questions = self.generator.generate_many(params, self.questions_per_game)
        power_ups = await self.wildcard_repository.read_player_wildcards(player.id)

        game = RaceGameModel(
            player_id=player.id,
            player_uid=player.uid,
            player_name=player.name,
            level_id=level.id,
            world_id=world.id,
            lives_remaining=MAX_LIVES,
            questions=questions,
            total_questions=len(questions),
            time_per_question=world.time_per_equation,
            review_time_seconds=self.review_time_seconds,
            game_started_at=self.clock(),
            available_power_ups=power_ups,
            player_products=player_products,
            machine_products=machine_products,
        )
        await self.game_repository.add(game)
        logging.info(f"Solo race {game.game_id} started by player {player.id} on level {level.id}")
        return game

    async def status(self, game_id: UUID, player_uid: Optional[str]) -> RaceStatusResultModel:
        async with self._race(game_id, player_uid, mutating=False) as game:
            now = self.clock()

            if game.is_finished:
                finished_at = game.game_finished_at or now
                return RaceStatusResultModel(
                    game=game, elapsed_seconds=elapsed_seconds(game.game_started_at, finished_at)
                )

            remaining = review_time_remaining(game.last_answer_time, game.review_time_seconds, now)
            if remaining > 0:
                seconds = math.ceil(remaining)
                message = f"You must wait {seconds} more seconds before the next question."
                raise ValidationException(message, errors={"review_time": [message]})

            elapsed = elapsed_seconds(game.game_started_at, now)
            self._update_machine_position(game, now)
            await self.game_repository.update(game)
            return RaceStatusResultModel(game=game, elapsed_seconds=elapsed)

    async def submit_answer(
        self, game_id: UUID, player_uid: Optional[str], answer: int
    ) -> SoloAnswerResultModel:
        """Answer the current question of the race

        Args:
            game_id (UUID): ID to identify this race
            player_uid (Optional[str]): External id of the caller, None to skip the owner check
            answer (int): The option chosen by the player

        Returns:
            SoloAnswerResultModel: Whether the answer counted and the race after it
        """
        async with self._race(game_id, player_uid, mutating=True) as game:
            question = game.current_question
            if question is None:
                raise BusinessException("There are no more questions in this race.")

            now = self.clock()
            timed_out = is_answer_timed_out(
                game.game_started_at,
                game.last_answer_time,
                game.time_per_question,
                game.review_time_seconds,
                now,
            )
            is_correct = not timed_out and answer == question.correct_answer

            if is_correct:
                game.player_position = advance_player_position(
                    game.player_position, game.total_questions, game.has_double_progress_active
                )
                game.has_double_progress_active = False
                game.correct_answers += 1
            else:
                game.lives_remaining = max(0, game.lives_remaining - 1)

            game.current_question_index += 1
            game.last_answer_time = now
            game.modified_options = None
            self._update_machine_position(game, now)

            open_chest = False
            coins_earned = 0
            if game.player_position >= game.total_questions:
                game.status = RaceStatusModel.player_won
                open_chest, coins_earned = await self._grant_level_reward(game)
            elif game.lives_remaining == 0:
                game.status = RaceStatusModel.player_lost
                await self.energy_repository.consume_energy(game.player_id)
            elif game.machine_position >= game.total_questions:
                game.status = RaceStatusModel.machine_won

            if game.is_finished:
                game.game_finished_at = now
                logging.info(f"Solo race {game.game_id} finished with status {game.status.value}")

            await self.game_repository.update(game)
            return SoloAnswerResultModel(
                game=game,
                is_correct=is_correct,
                correct_answer=question.correct_answer,
                player_answer=answer,
                should_open_world_chest=open_chest,
                coins_earned=coins_earned,
            )

    async def use_power_up(
        self, game_id: UUID, player_uid: Optional[str], power_up_type: PowerUpTypeModel
    ) -> PowerUpUsageResultModel:
        async with self._race(game_id, player_uid, mutating=True) as game:
            if power_up_type in game.used_power_up_types:
                raise BusinessException("This power-up was already used in this race.")

            question = game.current_question
            if question is None:
                raise BusinessException("There are no more questions in this race.")

            stock = game.power_up_stock(power_up_type)
            if (
                stock is None
                or stock.quantity <= 0
                or not await self.wildcard_repository.has_wildcard_available(
                    game.player_id, power_up_type
                )
            ):
                raise BusinessException("This power-up is not available.")

            current_options = game.modified_options or question.options
            wrong_options = [o for o in current_options if o != question.correct_answer]
            if power_up_type == PowerUpTypeModel.remove_wrong_option and (
                len(current_options) <= 1 or not wrong_options
            ):
                raise BusinessException("There is no wrong option left to remove.")
            if (
                power_up_type == PowerUpTypeModel.skip_question
                and game.current_question_index + 1 >= len(game.questions)
            ):
                raise BusinessException("The last question cannot be skipped.")

            stock.quantity -= 1
            game.used_power_up_types.add(power_up_type)

            # game is not persisted on failure, but the stored object is already mutated
            if not await self.wildcard_repository.consume_wildcard(game.player_id, power_up_type):
                raise BusinessException("Failed to consume the power-up.")

            now = self.clock()
            new_question_index = None
            if power_up_type == PowerUpTypeModel.remove_wrong_option:
                removed = int(self.rng.choice(wrong_options))
                game.modified_options = [o for o in current_options if o != removed]
                message = "A wrong option was removed."
            elif power_up_type == PowerUpTypeModel.skip_question:
                game.current_question_index += 1
                game.last_answer_time = now
                game.modified_options = None
                new_question_index = game.current_question_index
                message = "The question was skipped."
            else:
                game.has_double_progress_active = True
                message = "The next correct answer counts double."

            self._update_machine_position(game, now)
            await self.game_repository.update(game)
            logging.info(f"Power-up {power_up_type.name} used in solo race {game.game_id}")

            return PowerUpUsageResultModel(
                game=game,
                power_up_type=power_up_type,
                success=True,
                message=message,
                remaining_quantity=stock.quantity,
                modified_options=game.modified_options,
                new_question_index=new_question_index,
                double_progress_active=game.has_double_progress_active,
            )

    async def abandon(self, game_id: UUID, player_uid: Optional[str]) -> RaceGameModel:
        async with self._race(game_id, player_uid, mutating=True) as game:
            game.status = RaceStatusModel.player_lost
            game.lives_remaining = 0
            game.game_finished_at = self.clock()
            await self.energy_repository.consume_energy(game.player_id)

            await self.game_repository.update(game)
            logging.info(f"Solo race {game.game_id} abandoned by player {game.player_id}")
            return game

    # ==============================================================================
    # ==== Helpers =================================================================
    # ==============================================================================

    async def _load_game(
        self, game_id: UUID, player_uid: Optional[str], mutating: bool
    ) -> RaceGameModel:
        game = await self.game_repository.read_by_id(game_id)
        if game is None:
            raise NotFoundException(f"Solo race {game_id} was not found.")

        if player_uid is not None and game.player_uid != player_uid:
            logging.warning(f"Player {player_uid} tried to access solo race {game_id}")
            raise BusinessException("This race belongs to another player.")

        if mutating and game.is_finished:
            raise BusinessException("This race has already finished.")

        return game

    @asynccontextmanager
    async def _race(self, game_id: UUID, player_uid: Optional[str], mutating: bool):
        """Yield the guarded race, holding its lock while it is in progress.

        The guards run once before the lock is taken, so unknown or finished
        races never get a lock, and once more under the lock. The lock is
        dropped as soon as the race is gone or finished.
        """
        game = await self._load_game(game_id, player_uid, mutating)
        if game.is_finished:
            yield game
            return

        lock = await self.lock_manager.lock(game_id)
        try:
            async with lock:
                yield await self._load_game(game_id, player_uid, mutating)
        finally:
            game = await self.game_repository.read_by_id(game_id)
            if game is None or game.is_finished:
                await self.lock_manager.cleanup(game_id)

    def _update_machine_position(self, game: RaceGameModel, now: datetime) -> None:
        game.machine_position = compute_machine_position(
            game.total_questions,
            game.time_per_question,
            game.review_time_seconds,
            elapsed_seconds(game.game_started_at, now),
        )

    async def _grant_level_reward(self, game: RaceGameModel) -> tuple[bool, int]:
        """Pay the coins for a won race and record the level as completed

        Returns:
            tuple[bool, int]: Whether the world chest opens, coins earned
        """
        player = await self.player_repository.read_by_id(game.player_id)
        level = await self.level_repository.read_by_id(game.level_id)
        if player is None or level is None:
            logging.warning(f"Could not grant the reward of solo race {game.game_id}")
            return False, 0

        first_completion = is_first_completion(level.id, player.last_level_id)
        open_chest = should_open_world_chest(level.number, level.id, player.last_level_id)
        coins = calculate_level_reward(game.world_id, first_completion, self.rng)

        await self.player_repository.add_coins(player.id, coins)
        if first_completion:
            await self.player_repository.update_last_level(player.id, level.id)
        return open_chest, coins
