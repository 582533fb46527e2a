from sqlalchemy import ForeignKey
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column
from sqlalchemy.types import Integer, String, Float, DateTime, Boolean, JSON
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Player(Base):
    __tablename__ = "players"
    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(String, unique=True, index=True)
    name = Column(String)
    email = Column(String, nullable=True)
    coins = Column(Float, default=0)
    last_level_id = Column(Integer, default=0)

    energy = relationship("Energy", back_populates="player", uselist=False)


class Energy(Base):
    __tablename__ = "energy"
    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id"), unique=True)
    amount = Column(Integer, default=3)
    last_consumption_date = Column(DateTime, default=utc_now)

    player = relationship("Player", back_populates="energy")


class World(Base):
    __tablename__ = "worlds"
    id = Column(Integer, primary_key=True)
    name = Column(String)
    options_count = Column(Integer)
    option_range_min = Column(Integer)
    option_range_max = Column(Integer)
    number_range_min = Column(Integer)
    number_range_max = Column(Integer)
    time_per_equation = Column(Integer)
    difficulty = Column(String, default="")
    operations = Column(JSON, default=list)  # e.g. ["+", "-", "*"]

    levels = relationship("Level", back_populates="world")


class Level(Base):
    __tablename__ = "levels"
    id = Column(Integer, primary_key=True)
    world_id = Column(Integer, ForeignKey("worlds.id"))
    number = Column(Integer)
    terms_count = Column(Integer)
    variables_count = Column(Integer)
    result_type = Column(String)  # "MAYOR" / "MENOR"

    world = relationship("World", back_populates="levels")


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True)
    name = Column(String)
    description = Column(String, default="")
    product_type_id = Column(Integer)  # 1: car, 2: character, 3: background
    product_type_name = Column(String, default="")
    rarity_id = Column(Integer, default=1)
    rarity_name = Column(String, default="")
    rarity_color = Column(String, default="")


class PlayerProduct(Base):
    __tablename__ = "player_products"
    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id"), index=True)
    product_id = Column(Integer, ForeignKey("products.id"))
    is_active = Column(Boolean, default=False)

    product = relationship("Product")


class Wildcard(Base):
    __tablename__ = "wildcards"
    id = Column(Integer, primary_key=True)  # matches PowerUpTypeModel values
    name = Column(String)
    description = Column(String, default="")
    price = Column(Float, default=0)


class PlayerWildcard(Base):
    __tablename__ = "player_wildcards"
    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id"), index=True)
    wildcard_id = Column(Integer, ForeignKey("wildcards.id"))
    quantity = Column(Integer, default=0)

    wildcard = relationship("Wildcard")
