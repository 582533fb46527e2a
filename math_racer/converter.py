from math_racer.models.dc_models import (
    PowerUpUsageResultModel,
    RaceGameModel,
    RaceStatusResultModel,
    SoloAnswerResultModel,
)
from math_racer.models.schema_models import (
    PendingQuestionSchema,
    PowerUpStockSchema,
    PowerUpUsageSchema,
    ProductSchema,
    RaceGameSchema,
    RaceStatusSchema,
    SoloAnswerSchema,
)


class DataConverter:
    """This class is used to convert race results into the responses sent to the client."""

    def convert_game_to_schema(self, game: RaceGameModel) -> RaceGameSchema:
        """Convert the RaceGameModel to the RaceGameSchema to send client

        Args:
            game (RaceGameModel): The race as kept by the engine

        Returns:
            RaceGameSchema: The race without any correct answer. The pending
            question shows the options left after a removal power-up.
        """
        current_question = None
        question = game.current_question
        if question is not None and not game.is_finished:
            current_question = PendingQuestionSchema(
                question_id=question.id,
                equation=question.equation,
                options=game.modified_options or question.options,
            )

        return RaceGameSchema(
            game_id=game.game_id,
            player_name=game.player_name,
            level_id=game.level_id,
            world_id=game.world_id,
            status=game.status.value,
            player_position=game.player_position,
            machine_position=game.machine_position,
            lives_remaining=game.lives_remaining,
            correct_answers=game.correct_answers,
            current_question_index=game.current_question_index,
            total_questions=game.total_questions,
            time_per_question=game.time_per_question,
            review_time_seconds=game.review_time_seconds,
            game_started_at=game.game_started_at,
            game_finished_at=game.game_finished_at,
            has_double_progress_active=game.has_double_progress_active,
            used_power_ups=sorted(power_up.value for power_up in game.used_power_up_types),
            available_power_ups=[
                PowerUpStockSchema(
                    power_up_type=stock.power_up_type.value,
                    name=stock.power_up_type.name,
                    quantity=stock.quantity,
                )
                for stock in game.available_power_ups
            ],
            current_question=current_question,
            player_products=[ProductSchema.model_validate(p) for p in game.player_products],
            machine_products=[ProductSchema.model_validate(p) for p in game.machine_products],
        )

    def convert_status_to_schema(self, result: RaceStatusResultModel) -> RaceStatusSchema:
        return RaceStatusSchema(
            game=self.convert_game_to_schema(result.game),
            elapsed_seconds=result.elapsed_seconds,
        )

    def convert_answer_to_schema(self, result: SoloAnswerResultModel) -> SoloAnswerSchema:
        return SoloAnswerSchema(
            game=self.convert_game_to_schema(result.game),
            is_correct=result.is_correct,
            correct_answer=result.correct_answer,
            player_answer=result.player_answer,
            should_open_world_chest=result.should_open_world_chest,
            coins_earned=result.coins_earned,
        )

    def convert_power_up_to_schema(self, result: PowerUpUsageResultModel) -> PowerUpUsageSchema:
        return PowerUpUsageSchema(
            game=self.convert_game_to_schema(result.game),
            power_up_type=result.power_up_type.value,
            success=result.success,
            message=result.message,
            remaining_quantity=result.remaining_quantity,
            modified_options=result.modified_options,
            new_question_index=result.new_question_index,
            double_progress_active=result.double_progress_active,
        )
