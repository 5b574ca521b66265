"""Shared schema base.

Learn: The public API speaks camelCase JSON (accessToken, isActive,
sortOrder) while Python code stays snake_case. alias_generator maps
one to the other; populate_by_name lets tests and services build
models with either spelling. FastAPI serialises response models by
alias, so responses come out camelCase automatically.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    success: bool = True
    message: str | None = None
