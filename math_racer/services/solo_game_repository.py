from typing import Dict
from uuid import UUID

from math_racer.models.dc_models import RaceGameModel


class InMemorySoloGameRepository:
    """Keeps running solo races in process memory.

    Races are short lived and only touched by the process that started them,
    so they are not written to the database. The same object is returned on
    every read.
    """

    def __init__(self):
        self.games: Dict[UUID, RaceGameModel] = {}

    async def add(self, game: RaceGameModel) -> RaceGameModel:
        self.games[game.game_id] = game
        return game

    async def read_by_id(self, game_id: UUID) -> RaceGameModel | None:
        return self.games.get(game_id)

    async def update(self, game: RaceGameModel) -> RaceGameModel:
        self.games[game.game_id] = game
        return game

    async def delete(self, game_id: UUID) -> bool:
        return self.games.pop(game_id, None) is not None
