"""Schemas for decision-journey session endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.session_store import SessionRecord, SessionUpdate


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON with the frontend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(CamelModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: str | int | float


class QuestionnaireAnswer(CamelModel):
    question_id: str
    answer: str | int | float | bool | list[str]
    answered_at: str | int | float


class UserPreferences(CamelModel):
    model_config = ConfigDict(extra="allow")

    text_size: Literal["small", "medium", "large"] | None = None
    high_contrast: bool | None = None
    language: str | None = None


class UserValues(CamelModel):
    model_config = ConfigDict(extra="allow")

    priority_factors: list[str] | None = None
    lifestyle_preferences: list[str] | None = None
    concerns: list[str] | None = None
    support_network: str | None = None
    work_situation: str | None = None
    travel_preferences: str | None = None
    notes: str | None = None


class SessionUpdateRequest(CamelModel):
    """Partial session update; unknown top-level fields are collected in ``model_extra``."""

    model_config = ConfigDict(extra="allow", populate_by_name=False)

    preferences: UserPreferences | None = None
    questionnaire_answers: list[QuestionnaireAnswer] | None = None
    values: UserValues | None = None
    chat_history: list[ChatMessage] | None = None
    current_step: str | None = Field(default=None, min_length=1)

    def invalid_fields(self) -> list[str]:
        return sorted(self.model_extra or {})

    def to_update(self) -> SessionUpdate:
        """Convert to the store's partial update, keeping only keys the client sent."""

        return SessionUpdate(
            preferences=_dump_mapping(self.preferences),
            values=_dump_mapping(self.values),
            questionnaire_answers=(
                [item.model_dump(by_alias=True, mode="json") for item in self.questionnaire_answers]
                if self.questionnaire_answers is not None
                else None
            ),
            chat_history=(
                [item.model_dump(by_alias=True, mode="json") for item in self.chat_history]
                if self.chat_history is not None
                else None
            ),
            current_step=self.current_step,
        )


class SessionData(CamelModel):
    preferences: dict[str, Any]
    questionnaire_answers: list[dict[str, Any]]
    values: dict[str, Any]
    chat_history: list[dict[str, Any]]
    current_step: str

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionData":
        return cls(
            preferences=record.preferences,
            questionnaire_answers=record.questionnaire_answers,
            values=record.values,
            chat_history=record.chat_history,
            current_step=record.current_step,
        )


class SessionCreatedResponse(CamelModel):
    session_id: str
    expires_at: datetime
    message: str = "Session created successfully"


class SessionResponse(CamelModel):
    session_id: str
    expires_at: datetime
    message: str | None = None
    data: SessionData

    @classmethod
    def from_record(cls, record: SessionRecord, message: str | None = None) -> "SessionResponse":
        return cls(
            session_id=record.id,
            expires_at=record.expires_at,
            message=message,
            data=SessionData.from_record(record),
        )


class SessionDeletedResponse(CamelModel):
    message: str = "Session ended successfully"


class HealthResponse(CamelModel):
    status: str
    active_sessions: int


def _dump_mapping(model: BaseModel | None) -> dict[str, Any] | None:
    if model is None:
        return None
    # Only keys present in the request take part in the merge.
    return model.model_dump(by_alias=True, exclude_unset=True, mode="json")
