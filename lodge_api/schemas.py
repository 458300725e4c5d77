from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CandidateTiming(_Payload):
    start_date: date
    end_date: date


class CandidateCreate(_Payload):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    date_of_birth: Optional[date] = None
    living_location: Optional[str] = None
    profession: Optional[str] = None
    notes: Optional[str] = None
    lodge_id: Optional[str] = None


class CandidateUpdate(_Payload):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    living_location: Optional[str] = None
    profession: Optional[str] = None
    notes: Optional[str] = None
    lodge_id: Optional[str] = None
    timing: Optional[CandidateTiming] = None


class LodgeCreate(_Payload):
    name: str = Field(..., min_length=1)
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True


class LodgeUpdate(_Payload):
    name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class MemberUpdate(_Payload):
    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    primary_lodge_id: Optional[str] = None
    primary_lodge_position: Optional[str] = None
    lodge_roles: Optional[Dict[str, str]] = None


class AdminTransfer(_Payload):
    new_admin_id: str = Field(..., min_length=1)
