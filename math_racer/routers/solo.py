import logging
from functools import lru_cache
from uuid import UUID

from fastapi import APIRouter, Depends, Header

from math_racer.converter import DataConverter
from math_racer.db import Session
from math_racer.load_secrets import questions_per_game, review_time_seconds
from math_racer.models.dc_models import PowerUpTypeModel
from math_racer.models.schema_models import (
    AnswerSchema,
    ErrorSchema,
    PowerUpUsageSchema,
    RaceGameSchema,
    RaceStatusSchema,
    SoloAnswerSchema,
)
from math_racer.services.race_db import (
    EnergyRepository,
    LevelRepository,
    PlayerRepository,
    ProductRepository,
    WildcardRepository,
    WorldRepository,
)
from math_racer.services.solo_game_repository import InMemorySoloGameRepository
from math_racer.services.solo_race import SoloRaceEngine

solo_router = APIRouter(
    prefix="/solo",
    tags=["solo"],
    responses={400: {"model": ErrorSchema}, 404: {"model": ErrorSchema}},
)
data_converter = DataConverter()


@lru_cache
def get_race_engine() -> SoloRaceEngine:
    """One engine per process, so every request sees the same running races."""
    return SoloRaceEngine(
        player_repository=PlayerRepository(Session),
        energy_repository=EnergyRepository(Session),
        level_repository=LevelRepository(Session),
        world_repository=WorldRepository(Session),
        product_repository=ProductRepository(Session),
        wildcard_repository=WildcardRepository(Session),
        game_repository=InMemorySoloGameRepository(),
        questions_per_game=questions_per_game,
        review_time_seconds=review_time_seconds,
    )


class SoloRaceAPI:
    @staticmethod
    @solo_router.post("/start/{level_id}", response_model=RaceGameSchema)
    async def start(
        level_id: int,
        x_player_uid: str = Header(...),
        engine: SoloRaceEngine = Depends(get_race_engine),
    ):
        game = await engine.start(x_player_uid, level_id)
        return data_converter.convert_game_to_schema(game)

    @staticmethod
    @solo_router.get("/{game_id}", response_model=RaceStatusSchema)
    async def status(
        game_id: UUID,
        x_player_uid: str | None = Header(None),
        engine: SoloRaceEngine = Depends(get_race_engine),
    ):
        result = await engine.status(game_id, x_player_uid)
        return data_converter.convert_status_to_schema(result)

    @staticmethod
    @solo_router.post("/{game_id}/answer", response_model=SoloAnswerSchema)
    async def submit_answer(
        game_id: UUID,
        body: AnswerSchema,
        x_player_uid: str = Header(...),
        engine: SoloRaceEngine = Depends(get_race_engine),
    ):
        result = await engine.submit_answer(game_id, x_player_uid, body.answer)
        return data_converter.convert_answer_to_schema(result)

    @staticmethod
    @solo_router.post("/{game_id}/wildcard/{power_up_type}", response_model=PowerUpUsageSchema)
    async def use_wildcard(
        game_id: UUID,
        power_up_type: PowerUpTypeModel,
        x_player_uid: str = Header(...),
        engine: SoloRaceEngine = Depends(get_race_engine),
    ):
        logging.info(f"Wildcard {power_up_type.name} requested for solo race {game_id}")
        result = await engine.use_power_up(game_id, x_player_uid, power_up_type)
        return data_converter.convert_power_up_to_schema(result)

    @staticmethod
    @solo_router.post("/{game_id}/abandon", response_model=RaceGameSchema)
    async def abandon(
        game_id: UUID,
        x_player_uid: str = Header(...),
        engine: SoloRaceEngine = Depends(get_race_engine),
    ):
        game = await engine.abandon(game_id, x_player_uid)
        return data_converter.convert_game_to_schema(game)
