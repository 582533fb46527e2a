from pydantic import BaseModel, Field
from enum import Enum
from uuid import UUID
from uuid6 import uuid7
from datetime import datetime
from typing import Optional, List, Set


class RaceStatusModel(str, Enum):
    in_progress = "InProgress"  # the only non-terminal status
    player_won = "PlayerWon"
    player_lost = "PlayerLost"  # out of lives or abandoned
    machine_won = "MachineWon"


class PowerUpTypeModel(int, Enum):
    # Values match the wildcard ids stored in the database.
    remove_wrong_option = 1
    skip_question = 2
    double_progress = 3


class ComparisonPolicyModel(str, Enum):
    greater = "GREATER"
    less = "LESS"


class DifficultyParamsModel(BaseModel):
    term_count: int = 2
    variable_count: int = 1
    operations: List[str] = Field(default_factory=lambda: ["+", "-"])
    expected_result: str = ComparisonPolicyModel.greater.value
    options_count: int = 3
    option_range_min: int = -10
    option_range_max: int = 10
    number_range_min: int = -10
    number_range_max: int = 10
    time_per_equation: int = 10


class QuestionModel(BaseModel):
    id: int
    equation: str
    options: List[int]
    correct_answer: int

    class Config:
        from_attributes = True


class PlayerModel(BaseModel):
    id: int
    uid: str
    name: str
    coins: float = 0
    last_level_id: int = 0

    class Config:
        from_attributes = True


class LevelModel(BaseModel):
    id: int
    world_id: int
    number: int
    terms_count: int
    variables_count: int
    result_type: str

    class Config:
        from_attributes = True


class WorldModel(BaseModel):
    id: int
    name: str = ""
    options_count: int
    option_range_min: int
    option_range_max: int
    number_range_min: int
    number_range_max: int
    time_per_equation: int
    difficulty: str = ""
    operations: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PlayerProductModel(BaseModel):
    product_id: int
    name: str
    description: str = ""
    product_type_id: int
    product_type_name: str = ""
    rarity_id: int = 0
    rarity_name: str = ""
    rarity_color: str = ""

    class Config:
        from_attributes = True


class PowerUpStockModel(BaseModel):
    power_up_type: PowerUpTypeModel
    quantity: int


class RaceGameModel(BaseModel):
    game_id: UUID = Field(default_factory=uuid7)
    player_id: int
    player_uid: str
    player_name: str = ""
    level_id: int
    world_id: int
    status: RaceStatusModel = RaceStatusModel.in_progress

    player_position: int = 0
    machine_position: int = 0
    lives_remaining: int = 3
    correct_answers: int = 0
    current_question_index: int = 0

    questions: List[QuestionModel] = Field(default_factory=list)
    total_questions: int = 10
    time_per_question: int
    review_time_seconds: int = 3

    game_started_at: datetime
    last_answer_time: Optional[datetime] = None
    game_finished_at: Optional[datetime] = None

    has_double_progress_active: bool = False
    used_power_up_types: Set[PowerUpTypeModel] = Field(default_factory=set)
    available_power_ups: List[PowerUpStockModel] = Field(default_factory=list)
    modified_options: Optional[List[int]] = None

    player_products: List[PlayerProductModel] = Field(default_factory=list)
    machine_products: List[PlayerProductModel] = Field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.status != RaceStatusModel.in_progress

    @property
    def current_question(self) -> Optional[QuestionModel]:
        if self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def power_up_stock(self, power_up_type: PowerUpTypeModel) -> Optional[PowerUpStockModel]:
        for stock in self.available_power_ups:
            if stock.power_up_type == power_up_type:
                return stock
        return None


class RaceStatusResultModel(BaseModel):
    game: RaceGameModel
    elapsed_seconds: float


class SoloAnswerResultModel(BaseModel):
    game: RaceGameModel
    is_correct: bool
    correct_answer: int
    player_answer: int
    should_open_world_chest: bool = False
    coins_earned: int = 0


class PowerUpUsageResultModel(BaseModel):
    game: RaceGameModel
    power_up_type: PowerUpTypeModel
    success: bool
    message: str = ""
    remaining_quantity: int = 0
    modified_options: Optional[List[int]] = None
    new_question_index: Optional[int] = None
    double_progress_active: bool = False
