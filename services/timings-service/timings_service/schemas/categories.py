from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, StringConstraints

from .common import ColorToken

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


class CategoryCreate(BaseModel):
    name: CategoryName
    color_token: ColorToken


class CategoryUpdate(BaseModel):
    name: CategoryName | None = None
    color_token: ColorToken | None = None
    is_active: bool | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    color_token: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse]


class CategoryEnvelope(BaseModel):
    category: CategoryResponse


class CategoryMutationResponse(BaseModel):
    message: str
    category: CategoryResponse


class CategoryDeleteResponse(BaseModel):
    message: str
    deleted_category: CategoryResponse
