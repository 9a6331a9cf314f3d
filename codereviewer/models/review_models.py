"""
Data models for code review and chat operations
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

IssueType = Literal["bug", "style", "security"]
ChatRole = Literal["user", "assistant", "system"]

MAX_SCORE = 10
ARCHIVED_CODE_LIMIT = 500


def coerce_score(value: Any) -> int:
    """Coerce a model-supplied score into an integer in 0..MAX_SCORE, or 0"""
    if isinstance(value, bool):
        return 0
    try:
        score = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(score, MAX_SCORE))


def truncate_code(code: str, limit: int = ARCHIVED_CODE_LIMIT) -> str:
    """Shorten archived code snapshots, marking the cut with an ellipsis"""
    if len(code) > limit:
        return code[:limit] + "..."
    return code


class ReviewIssue(BaseModel):
    """Individual issue reported by the model"""

    line: Optional[int] = Field(None, description="Line number, None when unknown")
    type: IssueType = Field("style", description="Issue category")
    msg: str = Field("", description="Description of the issue")
    fix: Optional[str] = Field(None, description="Suggested replacement code")

    @field_validator("line", mode="before")
    @classmethod
    def coerce_line(cls, v: Any) -> Optional[int]:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        try:
            return int(str(v).strip())
        except ValueError:
            return None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        value = str(v or "").strip().lower()
        return value if value in ("bug", "style", "security") else "style"

    @field_validator("msg", mode="before")
    @classmethod
    def coerce_msg(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("fix", mode="before")
    @classmethod
    def coerce_fix(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)


class StructuredReview(BaseModel):
    """Normalized review returned by every backend"""

    summary: str = Field("", description="Brief overall assessment")
    score: int = Field(0, description="Quality score, 0 when the model gave none")
    issues: List[ReviewIssue] = Field(default_factory=list)
    optimizations: List[str] = Field(default_factory=list)

    @field_validator("summary", mode="before")
    @classmethod
    def coerce_summary(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("score", mode="before")
    @classmethod
    def validate_score(cls, v: Any) -> int:
        return coerce_score(v)

    @field_validator("issues", mode="before")
    @classmethod
    def drop_malformed_issues(cls, v: Any) -> List[Any]:
        if not isinstance(v, list):
            return []
        return [issue for issue in v if isinstance(issue, (dict, ReviewIssue))]

    @field_validator("optimizations", mode="before")
    @classmethod
    def coerce_optimizations(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if item is not None]


class ReviewEntry(BaseModel):
    """Archived review of one file"""

    model_config = ConfigDict(frozen=True)

    file: str
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")
    code: str = Field(..., description="Code snapshot, truncated for storage")
    review: StructuredReview
    score: int = 0

    @field_validator("score", mode="before")
    @classmethod
    def validate_score(cls, v: Any) -> int:
        return coerce_score(v)


class PreviousReview(BaseModel):
    """Condensed past review passed back to the model as memory"""

    timestamp: str
    score: int
    summary: str


class ReviewContext(BaseModel):
    """Prior findings for a file"""

    previous_reviews: List[PreviousReview] = Field(default_factory=list)

    def to_prompt_data(self) -> Dict[str, Any]:
        return {
            "previousReviews": [review.model_dump() for review in self.previous_reviews]
        }


class ChatMessage(BaseModel):
    """One turn of a chat conversation"""

    role: ChatRole
    content: str
