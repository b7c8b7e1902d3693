"""
FastAPI routes for the SmartForm assistant backend.

Endpoints:
- POST  /sessions               : start a session (fresh form + welcome message)
- POST  /chat                   : process a user message in a session
- GET   /sessions/{id}          : current form, history and missing fields
- PATCH /sessions/{id}/form     : apply edits typed directly into the form
- POST  /sessions/{id}/cancel   : abort the in-flight turn
- POST  /sessions/reset         : delete a session
- GET   /credentials/status     : whether an LLM API key is configured
- POST  /credentials            : store an API key (disabled in production)
- GET   /health                 : health check
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from smartform.agent.graph import run_turn
from smartform.agent.replies import error_message
from smartform.core.actions import build_error_action
from smartform.core.credentials import API_KEY_STORAGE_KEY
from smartform.core.form_state import (
    AnswerValidationError,
    apply_user_edits,
    missing_required_fields,
)
from smartform.core.language import BASE_LOCALE, Locale, detect_language

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected by the app factory
_session_store = None
_graph = None
_schema = None
_config = None
_llm_client = None
_credentials = None


def configure_routes(session_store, graph, schema, config, llm_client, credentials=None):
    """Inject the session store, compiled graph and pipeline dependencies.

    Called by the app factory during startup.
    """
    global _session_store, _graph, _schema, _config, _llm_client, _credentials
    _session_store = session_store
    _graph = graph
    _schema = schema
    _config = config
    _llm_client = llm_client
    _credentials = credentials


def _require_configured() -> None:
    if _session_store is None or _graph is None or _schema is None or _llm_client is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")


def _setup_required() -> bool:
    """True when the key is missing and may still be entered interactively."""
    return not _config.production and not _llm_client.has_credential()


def _get_session_or_404(session_id: str):
    session = _session_store.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return session


# --- Request / Response Models ---


class CreateSessionRequest(BaseModel):
    """Request body for the /sessions endpoint."""

    locale: Locale = BASE_LOCALE


class ChatRequest(BaseModel):
    """Request body for the /chat endpoint."""

    message: str = Field(..., min_length=1)
    session_id: str | None = None


class ChatResponse(BaseModel):
    """Response body for the /chat endpoint."""

    session_id: str
    action: dict[str, Any]
    form: dict[str, Any]
    changed_fields: list[str]
    missing_fields: list[str]
    locale: Locale
    setup_required: bool = False


class SessionResponse(BaseModel):
    """Snapshot of a session."""

    session_id: str
    form: dict[str, Any]
    messages: list[dict[str, Any]]
    missing_fields: list[str]
    action: dict[str, Any] = Field(default_factory=dict)
    setup_required: bool = False


class FormUpdateRequest(BaseModel):
    """Request body for PATCH /sessions/{id}/form."""

    values: dict[str, Any]


class ResetRequest(BaseModel):
    """Request body for the /sessions/reset endpoint."""

    session_id: str


class CredentialRequest(BaseModel):
    """Request body for POST /credentials."""

    api_key: str = Field(..., min_length=1)


def _session_response(session_id: str, state: dict) -> SessionResponse:
    form = state.get("form", {})
    return SessionResponse(
        session_id=session_id,
        form=form,
        messages=state.get("messages", []),
        missing_fields=missing_required_fields(form, _schema),
        action=state.get("action", {}),
        setup_required=_setup_required(),
    )


# --- Session endpoints ---


@router.post("/sessions", response_model=SessionResponse)
async def create_session(request: CreateSessionRequest | None = None):
    """Start a new session with a fresh form and the welcome message."""
    _require_configured()
    locale = request.locale if request is not None else BASE_LOCALE

    session_id, session = _session_store.create_session(
        schema=_schema,
        config=_config,
        llm_client=_llm_client,
        locale=locale,
    )
    logger.info("Created session %s", session_id)
    return _session_response(session_id, session.state)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    """Return the current form, message history and missing fields."""
    _require_configured()
    session = _get_session_or_404(session_id)
    return _session_response(session_id, session.state)


@router.patch("/sessions/{session_id}/form", response_model=SessionResponse)
async def update_form(session_id: str, request: FormUpdateRequest):
    """Apply edits typed directly into the form.

    Rejected with 409 while a turn is running, so the turn's merge cannot
    overwrite the edit.
    """
    _require_configured()
    session = _get_session_or_404(session_id)
    if session.busy:
        raise HTTPException(status_code=409, detail="A message is still being processed")

    try:
        form = apply_user_edits(session.state.get("form", {}), _schema, request.values)
    except AnswerValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"field_id": e.field_id, "message": e.message},
        )

    state = dict(session.state)
    state["form"] = form
    state["missing_fields"] = missing_required_fields(form, _schema)
    _session_store.save_session(session_id, state)
    return _session_response(session_id, state)


@router.post("/sessions/{session_id}/cancel")
async def cancel_turn(session_id: str):
    """Abort the in-flight turn. The form and history stay as they were."""
    _require_configured()
    session = _get_session_or_404(session_id)
    cancelled = session.cancel_inflight()
    if cancelled:
        logger.info("Cancelled in-flight turn for session %s", session_id)
    return {"cancelled": cancelled}


@router.post("/sessions/reset")
async def reset_session(request: ResetRequest):
    """Delete a conversation session and start fresh."""
    if _session_store is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")

    deleted = _session_store.delete_session(request.session_id)
    return {
        "success": deleted,
        "message": "Session reset" if deleted else "Session not found",
    }


# --- Chat ---


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """Process a user message in a form-filling conversation.

    If session_id is provided, resumes that session; otherwise a new one is
    created. Only one message per session is processed at a time: a second
    message while a turn is running gets 409.
    """
    _require_configured()

    session = None
    session_id = request.session_id
    if session_id:
        session = _session_store.get_session(session_id)

    if session is None:
        session_id, session = _session_store.create_session(
            schema=_schema,
            config=_config,
            llm_client=_llm_client,
            session_id=session_id,
        )

    if session.busy:
        raise HTTPException(status_code=409, detail="A message is still being processed")

    async with session.turn_lock:
        task = asyncio.create_task(run_turn(_graph, session.state, request.message))
        session.inflight = task
        try:
            result_state = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            locale = detect_language(request.message)
            return ChatResponse(
                session_id=session_id,
                action=build_error_action("cancelled", error_message("cancelled", locale), locale),
                form=session.state.get("form", {}),
                changed_fields=[],
                missing_fields=missing_required_fields(session.state.get("form", {}), _schema),
                locale=locale,
                setup_required=_setup_required(),
            )
        except Exception as e:
            logger.error("Error processing message: %s", e, exc_info=True)
            raise HTTPException(
                status_code=500,
                detail=f"Error processing message: {str(e)}",
            )
        finally:
            session.inflight = None

        _session_store.save_session(session_id, result_state)

    error = result_state.get("error")
    return ChatResponse(
        session_id=session_id,
        action=result_state.get("action", {}),
        form=result_state.get("form", {}),
        changed_fields=[] if error else result_state.get("changed_fields", []),
        missing_fields=missing_required_fields(result_state.get("form", {}), _schema),
        locale=result_state.get("locale", BASE_LOCALE.value),
        setup_required=_setup_required(),
    )


# --- Credentials ---


@router.get("/credentials/status")
async def credentials_status():
    """Report whether an LLM API key is configured."""
    _require_configured()
    return {
        "configured": _llm_client.has_credential(),
        "production": _config.production,
        "setup_required": _setup_required(),
    }


@router.post("/credentials")
async def set_credentials(request: CredentialRequest):
    """Store an API key in the local credential store.

    Only available outside production; in production the key must come
    from the environment.
    """
    _require_configured()
    if _config.production:
        raise HTTPException(status_code=403, detail="Credential setup is disabled in production")
    if _credentials is None:
        raise HTTPException(status_code=500, detail="No credential store configured")

    api_key = request.api_key.strip()
    if not api_key:
        raise HTTPException(status_code=400, detail="api_key cannot be empty")

    _credentials.set(API_KEY_STORAGE_KEY, api_key)
    logger.info("Stored LLM API key in %s", _credentials.path)
    return {"configured": True}


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    session_count = _session_store.count() if _session_store else 0
    return {
        "status": "healthy",
        "active_sessions": session_count,
    }
