"""
Common pydantic base model for hub DTOs.
"""
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseDTO(BaseModel):
    """
    Base configuration for all DTOs.

    - Aliases are generated in camelCase for JSON serialization.
    - Allows population by field name (snake_case) in Python code.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def generate_id(prefix: str, now_ms: int) -> str:
    """Build a unique identifier such as ``evt_1700000000000_3f2a9c1b7d4e``."""
    return f"{prefix}_{now_ms}_{uuid4().hex[:12]}"
