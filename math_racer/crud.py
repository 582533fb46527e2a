import logging
from typing import List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from math_racer.domain.race_rules import keep_recharge_progress
from math_racer.models.dc_models import (
    LevelModel,
    PlayerModel,
    PlayerProductModel,
    PowerUpStockModel,
    PowerUpTypeModel,
    WorldModel,
)
from math_racer.models.schemas import (
    Base,
    Energy,
    Level,
    Player,
    PlayerProduct,
    PlayerWildcard,
    Product,
    World,
    utc_now,
)

MACHINE_PRODUCT_TYPES = (1, 2, 3)  # car, character, background
POWER_UP_IDS = {power_up.value for power_up in PowerUpTypeModel}


def to_player_product_model(product: Product) -> PlayerProductModel:
    return PlayerProductModel(
        product_id=product.id,
        name=product.name,
        description=product.description or "",
        product_type_id=product.product_type_id,
        product_type_name=product.product_type_name or "",
        rarity_id=product.rarity_id or 0,
        rarity_name=product.rarity_name or "",
        rarity_color=product.rarity_color or "",
    )


class ReadData:
    @staticmethod
    async def read_player_by_uid(uid: str, session: AsyncSession) -> PlayerModel | None:
        """Read player data from database

        Args:
            uid (str): External (auth provider) id of the player

        Returns:
            PlayerModel: Player data with coins and last completed level
        """
        async with session:
            try:
                stmt = select(Player).where(Player.uid == uid)
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    return None

                return PlayerModel.model_validate(result)

            except Exception as e:
                logging.error(f"Failed to read player data: {e}")
                raise

    @staticmethod
    async def read_player_by_id(player_id: int, session: AsyncSession) -> PlayerModel | None:
        async with session:
            try:
                result = await session.get(Player, player_id)
                if result is None:
                    return None
                return PlayerModel.model_validate(result)

            except Exception as e:
                logging.error(f"Failed to read player data: {e}")
                raise

    @staticmethod
    async def read_energy_amount(player_id: int, session: AsyncSession) -> int:
        """Read the current energy of the player

        Args:
            player_id (int): To identify the player

        Returns:
            int: Energy units left, 0 when the player has no energy row
        """
        async with session:
            try:
                stmt = select(Energy.amount).where(Energy.player_id == player_id)
                result = await session.execute(stmt)
                amount = result.scalars().first()
                return amount or 0

            except Exception as e:
                logging.error(f"Failed to read energy data: {e}")
                raise

    @staticmethod
    async def read_level(level_id: int, session: AsyncSession) -> LevelModel | None:
        async with session:
            try:
                result = await session.get(Level, level_id)
                if result is None:
                    return None
                return LevelModel.model_validate(result)

            except Exception as e:
                logging.error(f"Failed to read level data: {e}")
                raise

    @staticmethod
    async def read_all_worlds(session: AsyncSession) -> List[WorldModel]:
        """Read every world (without its levels)

        Returns:
            List[WorldModel]: Worlds ordered by id
        """
        async with session:
            try:
                stmt = select(World).order_by(World.id)
                result = await session.execute(stmt)
                return [WorldModel.model_validate(world) for world in result.scalars().all()]

            except Exception as e:
                logging.error(f"Failed to read world data: {e}")
                raise

    @staticmethod
    async def read_active_products(player_id: int, session: AsyncSession) -> List[PlayerProductModel]:
        """Read the products the player has equipped (car, character, background)

        Args:
            player_id (int): To identify the player

        Returns:
            List[PlayerProductModel]: Active products of the player
        """
        async with session:
            try:
                stmt = (
                    select(Product)
                    .join(PlayerProduct, PlayerProduct.product_id == Product.id)
                    .where(PlayerProduct.player_id == player_id, PlayerProduct.is_active.is_(True))
                    .order_by(Product.product_type_id)
                )
                result = await session.execute(stmt)
                return [to_player_product_model(product) for product in result.scalars().all()]

            except Exception as e:
                logging.error(f"Failed to read active products: {e}")
                raise

    @staticmethod
    async def read_random_machine_products(session: AsyncSession) -> List[PlayerProductModel]:
        """Draw one random product per type for the computer opponent

        Returns:
            List[PlayerProductModel]: Up to one product per type
        """
        async with session:
            try:
                products = []
                for product_type_id in MACHINE_PRODUCT_TYPES:
                    stmt = (
                        select(Product)
                        .where(Product.product_type_id == product_type_id)
                        .order_by(func.random())
                        .limit(1)
                    )
                    result = await session.execute(stmt)
                    product = result.scalars().first()
                    if product is not None:
                        products.append(to_player_product_model(product))
                return products

            except Exception as e:
                logging.error(f"Failed to read machine products: {e}")
                raise

    @staticmethod
    async def read_player_wildcards(player_id: int, session: AsyncSession) -> List[PowerUpStockModel]:
        async with session:
            try:
                stmt = select(PlayerWildcard).where(
                    PlayerWildcard.player_id == player_id, PlayerWildcard.quantity > 0
                )
                result = await session.execute(stmt)
                return [
                    PowerUpStockModel(
                        power_up_type=PowerUpTypeModel(row.wildcard_id),
                        quantity=row.quantity,
                    )
                    for row in result.scalars().all()
                    if row.wildcard_id in POWER_UP_IDS
                ]

            except Exception as e:
                logging.error(f"Failed to read player wildcards: {e}")
                raise

    @staticmethod
    async def read_wildcard_quantity(player_id: int, wildcard_id: int, session: AsyncSession) -> int:
        async with session:
            try:
                stmt = select(PlayerWildcard.quantity).where(
                    PlayerWildcard.player_id == player_id,
                    PlayerWildcard.wildcard_id == wildcard_id,
                )
                result = await session.execute(stmt)
                return result.scalars().first() or 0

            except Exception as e:
                logging.error(f"Failed to read wildcard quantity: {e}")
                raise


class UpdateData:
    @staticmethod
    async def consume_energy(player_id: int, session: AsyncSession) -> bool:
        """Consume one energy unit, keeping the recharge progress already earned

        Args:
            player_id (int): To identify the player

        Returns:
            bool: False when the player had no energy left
        """
        async with session:
            try:
                stmt = select(Energy).where(Energy.player_id == player_id)
                result = await session.execute(stmt)
                energy = result.scalars().first()

                if energy is None or energy.amount <= 0:
                    return False

                now = utc_now()
                energy.amount -= 1
                energy.last_consumption_date = keep_recharge_progress(
                    energy.last_consumption_date or now, now
                )
                await session.commit()
                return True

            except Exception as e:
                logging.error(f"Failed to consume energy: {e}")
                raise

    @staticmethod
    async def consume_wildcard(player_id: int, wildcard_id: int, session: AsyncSession) -> bool:
        async with session:
            try:
                stmt = select(PlayerWildcard).where(
                    PlayerWildcard.player_id == player_id,
                    PlayerWildcard.wildcard_id == wildcard_id,
                )
                result = await session.execute(stmt)
                player_wildcard = result.scalars().first()

                if player_wildcard is None or player_wildcard.quantity <= 0:
                    return False

                player_wildcard.quantity -= 1
                await session.commit()
                return True

            except Exception as e:
                logging.error(f"Failed to consume wildcard: {e}")
                raise

    @staticmethod
    async def add_coins(player_id: int, coins: int, session: AsyncSession) -> bool:
        async with session:
            try:
                player = await session.get(Player, player_id)
                if player is None:
                    return False
                player.coins = (player.coins or 0) + coins
                await session.commit()
                return True

            except Exception as e:
                logging.error(f"Failed to add coins: {e}")
                raise

    @staticmethod
    async def update_last_level(player_id: int, level_id: int, session: AsyncSession) -> bool:
        """Store the last level the player has completed

        Args:
            player_id (int): To identify the player
            level_id (int): Completed level id
        """
        async with session:
            try:
                player = await session.get(Player, player_id)
                if player is None:
                    return False
                player.last_level_id = level_id
                await session.commit()
                return True

            except Exception as e:
                logging.error(f"Failed to update last level: {e}")
                raise


class CreateData:
    @staticmethod
    async def create_table(engine: AsyncEngine) -> None:
        """Create table if not exists"""
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except IntegrityError as e:
            logging.warning(f"Table already exists or other integrity error: {e}")
