from pydantic import BaseModel, Field


class Pagination(BaseModel):
    totalData: int = Field(..., description="Total number of matching rows.")
    page: int = Field(..., description="Current page, starting at 1.")
    limit: int = Field(..., description="Page size.")
    totalPage: int = Field(..., description="Number of pages for this page size.")
