from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Literal, Optional
from urllib.parse import parse_qs, urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


ContentType = Literal["video", "video_quiz", "quiz", "article", "embed", "cyber_security_training"]
Difficulty = Literal["Intro", "Beginner", "Intermediate", "Advanced"]

QUIZ_TYPES = frozenset({"quiz", "video_quiz", "cyber_security_training"})
OPTIONS_PER_QUESTION = 4


# PUBLIC_INTERFACE
def normalize_youtube_url(url: str) -> str:
    """
    Return the canonical watch URL for a YouTube link.

    youtu.be short links are accepted; a youtube.com URL without a 'v' query
    parameter raises ValueError. Playlist and timestamp parameters are dropped.
    """
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()
    if host.endswith("youtu.be"):
        video_id = parsed.path.lstrip("/").split("/")[0]
    else:
        video_id = (parse_qs(parsed.query).get("v") or [""])[0]
    if not video_id:
        raise ValueError("Invalid YouTube URL: missing video ID")
    return f"https://www.youtube.com/watch?v={video_id}"


def is_youtube_url(url: str) -> bool:
    host = (urlparse(url.strip()).hostname or "").lower()
    return host.endswith("youtube.com") or host.endswith("youtu.be")


def _require_http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Must be a valid URL")
    return value


class QuizQuestion(BaseModel):
    """Multiple choice question with exactly four options."""
    id: Optional[str] = Field(None, description="Stable question id within the content item")
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=OPTIONS_PER_QUESTION, max_length=OPTIONS_PER_QUESTION)
    correct_answer: int = Field(..., description="Zero-based index into options")

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Question text is required")
        return v.strip()

    @field_validator("options")
    @classmethod
    def _options_not_blank(cls, v: List[str]) -> List[str]:
        cleaned = [o.strip() for o in v]
        if any(not o for o in cleaned):
            raise ValueError("All four options must be filled in")
        return cleaned

    @model_validator(mode="after")
    def _answer_in_range(self) -> "QuizQuestion":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError("correct_answer must index one of the options")
        return self


class QuizQuestionPublic(BaseModel):
    """Question as shown to learners (no answer key)."""
    id: Optional[str] = None
    question: str
    options: List[str]


# PUBLIC_INTERFACE
def check_content_rules(
    content_type: str,
    questions: Iterable[object],
    html_content: Optional[str],
    content_url: Optional[str],
) -> None:
    """
    Cross-field rules shared by create and update.

    Raises ValueError when quiz-type content has no questions, other types carry
    questions, or an article has neither html_content nor content_url.
    """
    questions = list(questions)
    if content_type in QUIZ_TYPES and not questions:
        raise ValueError(f"Content of type '{content_type}' requires at least one question")
    if content_type not in QUIZ_TYPES and questions:
        raise ValueError(f"Content of type '{content_type}' cannot carry quiz questions")
    if content_type == "article" and not (html_content or content_url):
        raise ValueError("Article content requires html_content or content_url")


class _ContentFields(BaseModel):
    @field_validator("content_url", check_fields=False)
    @classmethod
    def _normalize_content_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if is_youtube_url(v):
            return normalize_youtube_url(v)
        return _require_http_url(v)

    @field_validator("thumbnail_url", "embed_url", check_fields=False)
    @classmethod
    def _valid_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _require_http_url(v.strip())

    @field_validator("title", check_fields=False)
    @classmethod
    def _strip_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Title must be at least 3 characters")
        return v


class ContentCreate(_ContentFields):
    """Create content payload."""
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    type: ContentType = Field("video")
    content_url: Optional[str] = Field(None)
    embed_url: Optional[str] = Field(None)
    html_content: Optional[str] = Field(None)
    hls_path: Optional[str] = Field(None, description="Object path inside the video bucket")
    thumbnail_url: Optional[str] = Field(None)
    category: Optional[str] = Field(None, max_length=100)
    difficulty: Difficulty = Field("Intro")
    duration_sec: int = Field(0, ge=0)
    passing_score: int = Field(70, ge=0, le=100)
    tags: List[str] = Field(default_factory=list)
    risk_tags: List[str] = Field(default_factory=list)
    compliance: List[str] = Field(default_factory=list)
    visibility: str = Field("org-wide")
    assigned_org_ids: List[UUID] = Field(default_factory=list, description="Empty = every organization")
    questions: List[QuizQuestion] = Field(default_factory=list)

    @model_validator(mode="after")
    def _cross_field_rules(self) -> "ContentCreate":
        check_content_rules(self.type, self.questions, self.html_content, self.content_url)
        return self


class ContentUpdate(_ContentFields):
    """Partial content update. Cross-field rules are checked against the merged row."""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    type: Optional[ContentType] = None
    content_url: Optional[str] = None
    embed_url: Optional[str] = None
    html_content: Optional[str] = None
    hls_path: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    difficulty: Optional[Difficulty] = None
    duration_sec: Optional[int] = Field(None, ge=0)
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    tags: Optional[List[str]] = None
    risk_tags: Optional[List[str]] = None
    compliance: Optional[List[str]] = None
    visibility: Optional[str] = None
    assigned_org_ids: Optional[List[UUID]] = None
    questions: Optional[List[QuizQuestion]] = None


class ContentRead(BaseModel):
    """Content read model (administrators see the answer key)."""
    id: UUID
    title: str
    description: Optional[str] = None
    type: ContentType
    content_url: Optional[str] = None
    embed_url: Optional[str] = None
    html_content: Optional[str] = None
    hls_path: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category: Optional[str] = None
    difficulty: Difficulty = "Intro"
    duration_sec: int = 0
    passing_score: int = 70
    tags: List[str] = Field(default_factory=list)
    risk_tags: List[str] = Field(default_factory=list)
    compliance: List[str] = Field(default_factory=list)
    visibility: str = "org-wide"
    assigned_org_ids: List[UUID] = Field(default_factory=list)
    questions: List[QuizQuestion] = Field(default_factory=list)
    creator_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LearnerContentRead(ContentRead):
    """Content as served to learners."""
    questions: List[QuizQuestionPublic] = Field(default_factory=list)
