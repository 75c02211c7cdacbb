from pydantic import BaseModel, Field


class BranchCreate(BaseModel):
    branch_name: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=255)
    manager_id: int | None = None


class BranchUpdate(BaseModel):
    branch_name: str | None = Field(default=None, min_length=1, max_length=200)
    location: str | None = Field(default=None, min_length=1, max_length=255)
    manager_id: int | None = None
