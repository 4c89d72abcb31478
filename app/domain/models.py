from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenderPreference(str, Enum):
    SAME_GENDER_ONLY = "same-gender-only"
    MIXED_REQUIRED = "mixed"
    NO_PREFERENCE = "no-preference"
    # advisory only, never fails a group
    SAME_GENDER_PREFERRED = "same-gender-preferred"

    @classmethod
    def _missing_(cls, value):
        aliases = {
            "same": cls.SAME_GENDER_ONLY,
            "mixed-required": cls.MIXED_REQUIRED,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class CandidateProfile(BaseModel):
    """Snapshot of one eligible member, frozen for the duration of a run."""
    id: str = Field(min_length=1)
    first_name: str = ""
    last_name: str = ""
    specialty: str = ""
    city: str = ""
    gender: str = Field(min_length=1)
    gender_preference: GenderPreference = GenderPreference.NO_PREFERENCE
    interests: FrozenSet[str] = Field(default_factory=frozenset)
    availability_slots: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True)

    @field_validator("gender_preference", mode="before")
    @classmethod
    def parse_preference(cls, value):
        if isinstance(value, str) and not isinstance(value, GenderPreference):
            return GenderPreference(value)
        return value

    @field_validator("interests", "availability_slots", mode="before")
    @classmethod
    def none_as_empty(cls, value: Optional[Iterable[str]]):
        if value is None:
            return frozenset()
        return value


@dataclass(frozen=True)
class PairScore:
    candidate_ids: Tuple[str, str]
    total: float
    breakdown: Dict[str, float] = field(default_factory=dict, compare=False)

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset(self.candidate_ids)


@dataclass(frozen=True)
class CandidateGroup:
    members: Tuple[CandidateProfile, ...]
    average_score: float
    group_id: str

    @property
    def member_ids(self) -> Tuple[str, ...]:
        return tuple(m.id for m in self.members)

    def __len__(self):
        return len(self.members)


@dataclass(frozen=True)
class MembershipRecord:
    """One historical membership row together with its group's reference week."""
    group_id: str
    candidate_id: str
    reference_date: date
