from typing import Annotated, Optional

from pydantic import BaseModel, StringConstraints, model_validator

from sitecms.schemas.common import Pagination

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class CategoryCreate(BaseModel):
    name: CategoryName


class CategoryUpdate(BaseModel):
    name: Optional[CategoryName] = None

    @model_validator(mode="after")
    def require_name(self):
        if self.name is None:
            raise ValueError("At least one field must be provided for update")
        return self


class CategoryResponse(BaseModel):
    id: str
    name: str


class CategoryListResponse(BaseModel):
    items: list[CategoryResponse]
    pagination: Pagination
