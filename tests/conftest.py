from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from math_racer.models.dc_models import (
    LevelModel,
    PlayerModel,
    PlayerProductModel,
    PowerUpStockModel,
    PowerUpTypeModel,
    WorldModel,
)
from math_racer.services.solo_game_repository import InMemorySoloGameRepository
from math_racer.services.solo_race import SoloRaceEngine

PLAYER_UID = "player-uid-1"
OTHER_UID = "player-uid-2"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakePlayerRepository:
    def __init__(self, players):
        self.players = {player.id: player for player in players}
        self.coins_added = []

    async def read_by_uid(self, uid):
        return next((p for p in self.players.values() if p.uid == uid), None)

    async def read_by_id(self, player_id):
        return self.players.get(player_id)

    async def add_coins(self, player_id, coins):
        self.coins_added.append((player_id, coins))
        self.players[player_id].coins += coins
        return True

    async def update_last_level(self, player_id, level_id):
        self.players[player_id].last_level_id = level_id
        return True


class FakeEnergyRepository:
    def __init__(self, amounts):
        self.amounts = dict(amounts)
        self.consumed = []

    async def has_energy(self, player_id):
        return self.amounts.get(player_id, 0) > 0

    async def consume_energy(self, player_id):
        if self.amounts.get(player_id, 0) <= 0:
            return False
        self.amounts[player_id] -= 1
        self.consumed.append(player_id)
        return True


class FakeLevelRepository:
    def __init__(self, levels):
        self.levels = {level.id: level for level in levels}

    async def read_by_id(self, level_id):
        return self.levels.get(level_id)


class FakeWorldRepository:
    def __init__(self, worlds):
        self.worlds = list(worlds)

    async def read_all(self):
        return list(self.worlds)


class FakeProductRepository:
    def __init__(self, active, machine):
        self.active = active
        self.machine = machine

    async def read_active_products(self, player_id):
        return list(self.active.get(player_id, []))

    async def read_machine_products(self):
        return list(self.machine)


class FakeWildcardRepository:
    def __init__(self, stock):
        self.stock = dict(stock)
        self.fail_consume = False

    async def read_player_wildcards(self, player_id):
        return [
            PowerUpStockModel(power_up_type=power_up_type, quantity=quantity)
            for (owner, power_up_type), quantity in self.stock.items()
            if owner == player_id and quantity > 0
        ]

    async def has_wildcard_available(self, player_id, power_up_type):
        return self.stock.get((player_id, power_up_type), 0) > 0

    async def consume_wildcard(self, player_id, power_up_type):
        if self.fail_consume or self.stock.get((player_id, power_up_type), 0) <= 0:
            return False
        self.stock[(player_id, power_up_type)] -= 1
        return True


def make_products(offset: int):
    return [
        PlayerProductModel(product_id=offset + type_id, name=f"product {offset + type_id}", product_type_id=type_id)
        for type_id in (1, 2, 3)
    ]


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def players():
    return FakePlayerRepository(
        [
            PlayerModel(id=1, uid=PLAYER_UID, name="Ana", coins=0, last_level_id=0),
            PlayerModel(id=2, uid=OTHER_UID, name="Bruno", coins=0, last_level_id=0),
        ]
    )


@pytest.fixture
def energy():
    return FakeEnergyRepository({1: 3, 2: 0})


@pytest.fixture
def levels():
    return FakeLevelRepository(
        [
            LevelModel(id=1, world_id=1, number=1, terms_count=2, variables_count=1, result_type="MAYOR"),
            LevelModel(id=15, world_id=1, number=15, terms_count=3, variables_count=1, result_type="MENOR"),
            LevelModel(id=99, world_id=42, number=1, terms_count=2, variables_count=1, result_type="MAYOR"),
        ]
    )


@pytest.fixture
def worlds():
    return FakeWorldRepository(
        [
            WorldModel(
                id=1,
                name="Sumas",
                options_count=4,
                option_range_min=-5,
                option_range_max=5,
                number_range_min=-9,
                number_range_max=9,
                time_per_equation=10,
                operations=["+", "-"],
            )
        ]
    )


@pytest.fixture
def products():
    return FakeProductRepository(active={1: make_products(0), 2: make_products(0)[:2]}, machine=make_products(10))


@pytest.fixture
def wildcards():
    return FakeWildcardRepository(
        {
            (1, PowerUpTypeModel.remove_wrong_option): 2,
            (1, PowerUpTypeModel.skip_question): 1,
            (1, PowerUpTypeModel.double_progress): 1,
        }
    )


@pytest.fixture
def games():
    return InMemorySoloGameRepository()


@pytest.fixture
def race_engine(players, energy, levels, worlds, products, wildcards, games, clock):
    return SoloRaceEngine(
        player_repository=players,
        energy_repository=energy,
        level_repository=levels,
        world_repository=worlds,
        product_repository=products,
        wildcard_repository=wildcards,
        game_repository=games,
        clock=clock,
        rng=np.random.default_rng(7),
    )
