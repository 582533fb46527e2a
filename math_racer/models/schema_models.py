from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class AnswerSchema(BaseModel):
    answer: int


class PendingQuestionSchema(BaseModel):
    """The question being asked; its correct answer is never sent."""

    question_id: int
    equation: str
    options: List[int]


class PowerUpStockSchema(BaseModel):
    power_up_type: int
    name: str
    quantity: int


class ProductSchema(BaseModel):
    product_id: int
    name: str
    description: str
    product_type_id: int
    product_type_name: str
    rarity_name: str
    rarity_color: str

    class Config:
        from_attributes = True


class RaceGameSchema(BaseModel):
    game_id: UUID
    player_name: str
    level_id: int
    world_id: int
    status: str
    player_position: int
    machine_position: int
    lives_remaining: int
    correct_answers: int
    current_question_index: int
    total_questions: int
    time_per_question: int
    review_time_seconds: int
    game_started_at: datetime
    game_finished_at: datetime | None
    has_double_progress_active: bool
    used_power_ups: List[int]
    available_power_ups: List[PowerUpStockSchema]
    current_question: Optional[PendingQuestionSchema] = None
    player_products: List[ProductSchema]
    machine_products: List[ProductSchema]


class RaceStatusSchema(BaseModel):
    game: RaceGameSchema
    elapsed_seconds: float


class SoloAnswerSchema(BaseModel):
    game: RaceGameSchema
    is_correct: bool
    correct_answer: int
    player_answer: int
    should_open_world_chest: bool
    coins_earned: int


class PowerUpUsageSchema(BaseModel):
    game: RaceGameSchema
    power_up_type: int
    success: bool
    message: str
    remaining_quantity: int
    modified_options: Optional[List[int]] = None
    new_question_index: Optional[int] = None
    double_progress_active: bool


class ErrorSchema(BaseModel):
    message: str
    details: Optional[dict] = None
