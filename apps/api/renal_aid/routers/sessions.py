"""Decision-journey session endpoints."""
from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_session_store
from ..schemas import sessions as schemas
from ..services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_DETAIL = "The requested session does not exist or has expired"


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.SessionCreatedResponse)
async def create_session(store: SessionStore = Depends(get_session_store)) -> schemas.SessionCreatedResponse:
    """Open a new anonymous session."""

    record = store.create(str(uuid4()))
    logger.info("Session created session_id=%s", record.id)
    return schemas.SessionCreatedResponse(session_id=record.id, expires_at=record.expires_at)


@router.get("/{session_id}", response_model=schemas.SessionResponse)
async def read_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> schemas.SessionResponse:
    """Return the session snapshot and renew its expiry."""

    record = store.get(session_id) if store.touch(session_id) else None
    if record is None:
        logger.debug("Session not found session_id=%s", session_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
    return schemas.SessionResponse.from_record(record)


@router.put("/{session_id}", response_model=schemas.SessionResponse)
async def update_session(
    session_id: str,
    payload: schemas.SessionUpdateRequest,
    store: SessionStore = Depends(get_session_store),
) -> schemas.SessionResponse:
    """Merge a partial update into the session."""

    if store.get(session_id) is None:
        logger.debug("Session not found for update session_id=%s", session_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)

    invalid = payload.invalid_fields()
    if invalid:
        logger.warning("Invalid fields in session update session_id=%s fields=%s", session_id, invalid)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid fields: {', '.join(invalid)}",
        )

    record = store.update(session_id, payload.to_update())
    if record is None:
        logger.debug("Session not found for update session_id=%s", session_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
    return schemas.SessionResponse.from_record(record, message="Session updated successfully")


@router.delete("/{session_id}", response_model=schemas.SessionDeletedResponse)
async def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> schemas.SessionDeletedResponse:
    """End a session early."""

    if not store.delete(session_id):
        logger.debug("Session not found for deletion session_id=%s", session_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="The requested session does not exist or has already been deleted",
        )
    logger.info("Session deleted session_id=%s", session_id)
    return schemas.SessionDeletedResponse()
