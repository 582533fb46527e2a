"""Errors raised by the race engine.

Routers translate them into HTTP responses; the domain never imports FastAPI.
"""

from typing import Dict, List, Optional


class NotFoundException(Exception):
    """A referenced player, game, level or world does not exist."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationException(Exception):
    """Malformed or mistimed input. The caller may retry later."""

    def __init__(
        self,
        message: str = "One or more validation errors occurred.",
        errors: Optional[Dict[str, List[str]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class BusinessException(Exception):
    """A game rule was violated (no energy, wrong owner, finished game...)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
