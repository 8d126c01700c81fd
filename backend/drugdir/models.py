from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, Literal, Optional, Tuple, Union

UNKNOWN = "Unknown"


class DrugRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    brand_name: str = UNKNOWN
    generic_name: str = UNKNOWN
    manufacturer_name: str = UNKNOWN


# Queries
class SearchQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str

    @field_validator("term")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("search term must not be blank")
        return v


class DiscoverQuery(BaseModel):
    model_config = ConfigDict(frozen=True)


Query = Union[SearchQuery, DiscoverQuery]


def make_query(text: Optional[str]) -> Query:
    """Blank or missing text means 'show me something', i.e. a discover query."""
    if text and text.strip():
        return SearchQuery(term=text)
    return DiscoverQuery()


# Fetch outcomes
class FetchSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    records: Tuple[DrugRecord, ...]
    attempts: int = 1


class FetchEmpty(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"
    attempts: int = 1


class FetchFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    message: str
    attempts: int


FetchOutcome = Union[FetchSuccess, FetchEmpty, FetchFailure]


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: Tuple[DrugRecord, ...] = ()
    loading: bool = True
    error: Optional[str] = None
    selected: Optional[DrugRecord] = None


# Local user
class Credential(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    username: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    username: str
    welcome: str


class DirectoryResponse(BaseModel):
    state: SessionState
    clicks: int = 0


class RegistrationErrors(BaseModel):
    errors: Dict[str, str]
