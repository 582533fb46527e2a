"""DB service layer for the solo race collaborators.

- The race engine should not touch DB sessions directly; it calls these
  repositories.
- This layer owns session boundaries: one session per call.
- Update helpers report failure with False, not with an exception.
"""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from math_racer.crud import ReadData, UpdateData
from math_racer.models.dc_models import (
    LevelModel,
    PlayerModel,
    PlayerProductModel,
    PowerUpStockModel,
    PowerUpTypeModel,
    WorldModel,
)


class PlayerRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read_by_uid(self, uid: str) -> PlayerModel | None:
        async with self.session_factory() as session:
            return await ReadData.read_player_by_uid(uid, session)

    async def read_by_id(self, player_id: int) -> PlayerModel | None:
        async with self.session_factory() as session:
            return await ReadData.read_player_by_id(player_id, session)

    async def add_coins(self, player_id: int, coins: int) -> bool:
        async with self.session_factory() as session:
            return await UpdateData.add_coins(player_id, coins, session)

    async def update_last_level(self, player_id: int, level_id: int) -> bool:
        async with self.session_factory() as session:
            return await UpdateData.update_last_level(player_id, level_id, session)


class EnergyRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def has_energy(self, player_id: int) -> bool:
        async with self.session_factory() as session:
            return await ReadData.read_energy_amount(player_id, session) > 0

    async def consume_energy(self, player_id: int) -> bool:
        async with self.session_factory() as session:
            return await UpdateData.consume_energy(player_id, session)


class LevelRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read_by_id(self, level_id: int) -> LevelModel | None:
        async with self.session_factory() as session:
            return await ReadData.read_level(level_id, session)


class WorldRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read_all(self) -> List[WorldModel]:
        async with self.session_factory() as session:
            return await ReadData.read_all_worlds(session)


class ProductRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read_active_products(self, player_id: int) -> List[PlayerProductModel]:
        async with self.session_factory() as session:
            return await ReadData.read_active_products(player_id, session)

    async def read_machine_products(self) -> List[PlayerProductModel]:
        async with self.session_factory() as session:
            return await ReadData.read_random_machine_products(session)


class WildcardRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read_player_wildcards(self, player_id: int) -> List[PowerUpStockModel]:
        async with self.session_factory() as session:
            return await ReadData.read_player_wildcards(player_id, session)

    async def has_wildcard_available(self, player_id: int, power_up_type: PowerUpTypeModel) -> bool:
        async with self.session_factory() as session:
            quantity = await ReadData.read_wildcard_quantity(player_id, power_up_type.value, session)
            return quantity > 0

    async def consume_wildcard(self, player_id: int, power_up_type: PowerUpTypeModel) -> bool:
        async with self.session_factory() as session:
            return await UpdateData.consume_wildcard(player_id, power_up_type.value, session)
