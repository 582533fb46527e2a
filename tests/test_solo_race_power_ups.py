import pytest

from math_racer.domain.exceptions import BusinessException
from math_racer.models.dc_models import PowerUpTypeModel

PLAYER_UID = "player-uid-1"
OTHER_UID = "player-uid-2"


async def test_remove_wrong_option_removes_exactly_one_wrong_option(race_engine, wildcards):
    game = await race_engine.start(PLAYER_UID, 1)
    question = game.questions[0]

    result = await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.remove_wrong_option)

    assert result.success
    assert len(result.modified_options) == len(question.options) - 1
    assert set(result.modified_options) < set(question.options)
    assert question.correct_answer in result.modified_options
    assert game.modified_options == result.modified_options
    assert result.remaining_quantity == 1
    assert wildcards.stock[(1, PowerUpTypeModel.remove_wrong_option)] == 1
    assert PowerUpTypeModel.remove_wrong_option in game.used_power_up_types


async def test_power_up_can_only_be_used_once_per_race(race_engine, wildcards):
    game = await race_engine.start(PLAYER_UID, 1)
    await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.remove_wrong_option)

    with pytest.raises(BusinessException) as error:
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.remove_wrong_option)

    assert "already used" in error.value.message
    assert wildcards.stock[(1, PowerUpTypeModel.remove_wrong_option)] == 1
    assert len(game.modified_options) == len(game.questions[0].options) - 1


async def test_skip_question_advances_without_scoring(race_engine, clock):
    game = await race_engine.start(PLAYER_UID, 1)
    clock.advance(4)

    result = await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.skip_question)

    assert result.new_question_index == 1
    assert game.current_question_index == 1
    assert game.last_answer_time == clock.now
    assert game.player_position == 0
    assert game.lives_remaining == 3
    assert game.correct_answers == 0
    assert game.modified_options is None


async def test_skip_is_rejected_on_the_last_question(race_engine, wildcards):
    game = await race_engine.start(PLAYER_UID, 1)
    game.current_question_index = len(game.questions) - 1

    with pytest.raises(BusinessException):
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.skip_question)

    assert PowerUpTypeModel.skip_question not in game.used_power_up_types
    assert wildcards.stock[(1, PowerUpTypeModel.skip_question)] == 1


async def test_double_progress_sets_the_flag(race_engine):
    game = await race_engine.start(PLAYER_UID, 1)

    result = await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.double_progress)

    assert result.double_progress_active
    assert game.has_double_progress_active
    assert result.remaining_quantity == 0


async def test_power_up_missing_from_the_race_inventory(race_engine, wildcards):
    del wildcards.stock[(1, PowerUpTypeModel.skip_question)]
    game = await race_engine.start(PLAYER_UID, 1)

    with pytest.raises(BusinessException) as error:
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.skip_question)
    assert "not available" in error.value.message


async def test_power_up_spent_outside_the_race(race_engine, wildcards):
    game = await race_engine.start(PLAYER_UID, 1)
    wildcards.stock[(1, PowerUpTypeModel.double_progress)] = 0

    with pytest.raises(BusinessException):
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.double_progress)
    assert not game.has_double_progress_active
    assert game.power_up_stock(PowerUpTypeModel.double_progress).quantity == 1


async def test_failed_consumption_leaves_the_race_marked_as_used(race_engine, wildcards, games):
    game = await race_engine.start(PLAYER_UID, 1)
    wildcards.fail_consume = True

    with pytest.raises(BusinessException) as error:
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.double_progress)

    assert "Failed to consume" in error.value.message
    stored = await games.read_by_id(game.game_id)
    assert PowerUpTypeModel.double_progress in stored.used_power_up_types
    assert stored.power_up_stock(PowerUpTypeModel.double_progress).quantity == 0
    assert not stored.has_double_progress_active


async def test_power_up_guards(race_engine):
    game = await race_engine.start(PLAYER_UID, 1)

    with pytest.raises(BusinessException):
        await race_engine.use_power_up(game.game_id, OTHER_UID, PowerUpTypeModel.double_progress)

    game.current_question_index = len(game.questions)
    with pytest.raises(BusinessException):
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.double_progress)

    game.current_question_index = 0
    await race_engine.abandon(game.game_id, PLAYER_UID)
    with pytest.raises(BusinessException):
        await race_engine.use_power_up(game.game_id, PLAYER_UID, PowerUpTypeModel.double_progress)
    assert game.used_power_up_types == set()
