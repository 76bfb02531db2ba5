from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class CompetencyLevelCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Level name, e.g. 'Basic'")
    training_plan_document: Optional[str] = None
    eligibility_criteria: Optional[str] = None
    verification: Optional[str] = None


class CompetencyLevelRead(BaseModel):
    id: str
    competency_id: str
    name: str

    class Config:
        from_attributes = True


class CompetencyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    levels: List[CompetencyLevelCreate] = []
    trainer_user_ids: List[str] = []


class CompetencyRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    status: int
    levels: List[CompetencyLevelRead] = []

    class Config:
        from_attributes = True
