"""Procedural comparison questions of the form ``y = <expr>``.

The player is shown an expression in ``x`` and a few candidate values for
``x``; the correct candidate is the extreme option whose ``y`` is the greater
(or the lesser, depending on the level) of the two extremes.

Rule of thumb:
- OK: normalization, random term generation, exact arithmetic.
- Not OK: repositories, datetime.now(), logging above debug level.

The generator never raises. Bad parameters are corrected, degenerate
expressions are retried a bounded number of times, and a plain linear
expression is used as the last resort.
"""

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Optional, Union

import numpy as np

from math_racer.models.dc_models import (
    ComparisonPolicyModel,
    DifficultyParamsModel,
    QuestionModel,
)

DEFAULT_TERM_COUNT = 2
DEFAULT_VARIABLE_COUNT = 1
DEFAULT_OPTIONS_COUNT = 2
DEFAULT_OPERATIONS = ["+", "-"]
DEFAULT_RANGE = (-10, 10)
MAX_GENERATION_ATTEMPTS = 20

VALID_OPERATIONS = ("+", "-", "*", "/")
OPERATION_ALIASES = {"−": "-", "×": "*", "·": "*", "÷": "/", ":": "/"}
POLICY_ALIASES = {
    "GREATER": ComparisonPolicyModel.greater,
    "MAYOR": ComparisonPolicyModel.greater,
    "LESS": ComparisonPolicyModel.less,
    "MENOR": ComparisonPolicyModel.less,
}

Token = Union[int, str]


@dataclass
class Term:
    coefficient: int
    has_variable: bool

    def factors(self) -> List[Token]:
        if not self.has_variable:
            return [self.coefficient]
        if self.coefficient == 1:
            return ["x"]
        return [self.coefficient, "*", "x"]

    def render(self, leading: bool) -> str:
        if not self.has_variable:
            text = str(self.coefficient)
            return text if leading or self.coefficient > 0 else f"({text})"
        if self.coefficient == 1:
            return "x"
        if self.coefficient == -1:
            return "-x" if leading else "(-x)"
        if self.coefficient < 0:
            return f"({self.coefficient})*x"
        return f"{self.coefficient}*x"


@dataclass
class Expression:
    """Terms joined by binary operators, evaluated with the usual precedence.

    A variable term ``c*x`` contributes two factors, so ``6 / 2*x`` reads as
    ``(6 / 2) * x`` exactly like the rendered string.
    """

    terms: List[Term]
    operators: List[str]

    def render(self) -> str:
        parts = [self.terms[0].render(leading=True)]
        for operator, term in zip(self.operators, self.terms[1:]):
            parts.append(operator)
            parts.append(term.render(leading=False))
        return " ".join(parts)

    def tokens(self) -> List[Token]:
        tokens: List[Token] = list(self.terms[0].factors())
        for operator, term in zip(self.operators, self.terms[1:]):
            tokens.append(operator)
            tokens.extend(term.factors())
        return tokens

    def evaluate(self, x: int) -> Optional[Fraction]:
        """Exact value at ``x``, or None when a division by zero occurs."""
        tokens = self.tokens()
        values = tokens[0::2]
        operators = tokens[1::2]

        total = Fraction(0)
        sign = 1
        product = _token_value(values[0], x)
        for operator, raw in zip(operators, values[1:]):
            value = _token_value(raw, x)
            if operator == "*":
                product *= value
            elif operator == "/":
                if value == 0:
                    return None
                product /= value
            else:
                total += sign * product
                sign = 1 if operator == "+" else -1
                product = value
        return total + sign * product

    def uses_variable(self) -> bool:
        return any(term.has_variable for term in self.terms)


def _token_value(token: Token, x: int) -> Fraction:
    if token == "x":
        return Fraction(x)
    return Fraction(token)


def parse_expression(equation: str) -> Expression:
    """Parse a rendered ``y = <expr>`` (or bare ``<expr>``) back into an Expression."""
    if "=" in equation:
        equation = equation.split("=", 1)[1]
    chunks = equation.split()
    terms = [_parse_term(chunk) for chunk in chunks[0::2]]
    operators = chunks[1::2]
    return Expression(terms=terms, operators=operators)


def _parse_term(chunk: str) -> Term:
    factors = chunk.split("*")
    if len(factors) == 2:
        return Term(coefficient=int(factors[0].strip("()")), has_variable=True)
    text = chunk.strip("()")
    if text == "x":
        return Term(coefficient=1, has_variable=True)
    if text == "-x":
        return Term(coefficient=-1, has_variable=True)
    return Term(coefficient=int(text), has_variable=False)


def evaluate_equation(equation: str, x: int) -> Optional[float]:
    """Evaluate a rendered question equation at ``x`` as a real number."""
    value = parse_expression(equation).evaluate(x)
    return None if value is None else float(value)


def normalize_operations(operations: Optional[List[str]]) -> List[str]:
    normalized: List[str] = []
    for operation in operations or []:
        operation = OPERATION_ALIASES.get(str(operation).strip(), str(operation).strip())
        if operation in VALID_OPERATIONS and operation not in normalized:
            normalized.append(operation)
    return normalized or list(DEFAULT_OPERATIONS)


def normalize_policy(expected_result: Optional[str]) -> ComparisonPolicyModel:
    key = (expected_result or "").strip().upper()
    return POLICY_ALIASES.get(key, ComparisonPolicyModel.greater)


def normalize_params(params: Optional[DifficultyParamsModel]) -> DifficultyParamsModel:
    """Return a corrected copy of ``params``; the input is left untouched."""
    p = params.model_copy(deep=True) if params is not None else DifficultyParamsModel()

    if p.term_count < 1:
        p.term_count = DEFAULT_TERM_COUNT
    if p.variable_count < 1:
        p.variable_count = DEFAULT_VARIABLE_COUNT
    if p.variable_count > p.term_count:
        p.variable_count = p.term_count

    if p.number_range_min > p.number_range_max:
        p.number_range_min, p.number_range_max = DEFAULT_RANGE
    if p.number_range_min == p.number_range_max == 0:
        p.number_range_min, p.number_range_max = DEFAULT_RANGE

    if p.option_range_min > p.option_range_max:
        p.option_range_min, p.option_range_max = DEFAULT_RANGE
    if p.options_count < 2:
        p.options_count = DEFAULT_OPTIONS_COUNT
    span = p.option_range_max - p.option_range_min + 1
    if span < 2:
        p.option_range_min, p.option_range_max = DEFAULT_RANGE
        span = p.option_range_max - p.option_range_min + 1
    p.options_count = min(p.options_count, span)

    p.operations = normalize_operations(p.operations)
    p.expected_result = normalize_policy(p.expected_result).value
    return p


def find_correct_option(
    y_min: Fraction,
    y_max: Fraction,
    x_min: int,
    x_max: int,
    policy: ComparisonPolicyModel,
) -> int:
    """Pick the extreme option whose value wins under ``policy``.

    Ties go to the larger option.
    """
    if policy == ComparisonPolicyModel.greater:
        return x_max if y_max >= y_min else x_min
    return x_max if y_max <= y_min else x_min


class EquationGenerator:
    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def generate_many(self, params: DifficultyParamsModel, count: int) -> List[QuestionModel]:
        """Generate ``count`` independent questions (duplicates are allowed)."""
        return [self.generate_one(params) for _ in range(max(count, 0))]

    def generate_one(self, params: DifficultyParamsModel) -> QuestionModel:
        p = normalize_params(params)
        options = self._generate_options(p.options_count, p.option_range_min, p.option_range_max)

        expression = None
        for _ in range(MAX_GENERATION_ATTEMPTS):
            candidate = Expression(
                terms=self._generate_terms(p),
                operators=self._generate_operators(p.term_count - 1, p.operations),
            )
            if self._is_valid(candidate, options):
                expression = candidate
                break

        if expression is None:
            logging.debug(
                f"No valid expression after {MAX_GENERATION_ATTEMPTS} attempts, using linear fallback"
            )
            expression = self._fallback_expression(p)

        x_min, x_max = options[0], options[-1]
        correct_answer = find_correct_option(
            expression.evaluate(x_min),
            expression.evaluate(x_max),
            x_min,
            x_max,
            ComparisonPolicyModel(p.expected_result),
        )
        return QuestionModel(
            id=int(self.rng.integers(1000, 9999, endpoint=True)),
            equation=f"y = {expression.render()}",
            options=options,
            correct_answer=correct_answer,
        )

    def _is_valid(self, expression: Expression, options: List[int]) -> bool:
        if not expression.uses_variable():
            return False
        values = [expression.evaluate(option) for option in options]
        if any(value is None for value in values):
            return False
        if len(options) == 1:
            return True
        return values[0] != values[-1]

    def _generate_terms(self, p: DifficultyParamsModel) -> List[Term]:
        terms = [
            Term(self._random_non_zero(p.number_range_min, p.number_range_max), True)
            for _ in range(p.variable_count)
        ]
        terms += [
            Term(self._random_non_zero(p.number_range_min, p.number_range_max), False)
            for _ in range(p.term_count - p.variable_count)
        ]
        return [terms[i] for i in self.rng.permutation(len(terms))]

    def _generate_operators(self, count: int, operations: List[str]) -> List[str]:
        return [str(self.rng.choice(operations)) for _ in range(count)]

    def _generate_options(self, count: int, low: int, high: int) -> List[int]:
        options = set()
        while len(options) < count:
            options.add(int(self.rng.integers(low, high, endpoint=True)))
        return sorted(options)

    def _random_non_zero(self, low: int, high: int) -> int:
        while True:
            value = int(self.rng.integers(low, high, endpoint=True))
            if value != 0:
                return value

    def _fallback_expression(self, p: DifficultyParamsModel) -> Expression:
        coefficient = self._random_non_zero(p.number_range_min, p.number_range_max)
        constant = self._random_non_zero(p.number_range_min, p.number_range_max)
        return Expression(
            terms=[Term(coefficient, True), Term(constant, False)],
            operators=["+"],
        )
