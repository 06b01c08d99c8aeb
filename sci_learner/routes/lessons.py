"""Guided-lesson endpoints: module catalogue, characters, per-session engine control."""

from fastapi import APIRouter, Depends, HTTPException, Request

from sci_learner.characters import get_character, list_characters
from sci_learner.engine import DialogueEngine
from sci_learner.sessions import SessionRegistry

from .models import MessageBody, StartBody

router = APIRouter()


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def _engine(session_id: str, sessions: SessionRegistry) -> DialogueEngine:
    engine = sessions.get(session_id)
    if engine is None:
        raise HTTPException(404, "Session not found")
    return engine


def _snapshot(engine: DialogueEngine) -> dict:
    return {
        "dialogue": engine.dialogue.state.model_dump(mode="json"),
        "bubbles": engine.bubbles.state.model_dump(mode="json"),
        "bubble_mode": engine.bubble_mode.state.value,
        "is_paused": engine.is_paused,
    }


@router.get("/modules")
async def list_modules(request: Request):
    """List every scripted lesson module."""
    registry = request.app.state.registry
    return [
        {
            "module_id": s.module_id,
            "title": s.title,
            "module_type": s.module_type,
            "lesson_id": s.lesson_id,
            "lesson_title": s.lesson_title,
            "topic_id": s.topic_id,
            "steps": len(s.steps),
        }
        for s in registry.list_scripts()
    ]


@router.get("/characters")
async def characters():
    """List the tutor characters."""
    return [c.model_dump() for c in list_characters()]


@router.post("/sessions/{session_id}/start", status_code=202)
async def start_module(
    session_id: str, body: StartBody, request: Request,
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Start (or restart) a module. The script runs in the background."""
    character = get_character(body.character_id)
    if character is None:
        raise HTTPException(400, f"Unknown character '{body.character_id}'")
    script = request.app.state.registry.get(body.module_id)
    lesson_id = body.lesson_id or script.lesson_id or "lesson"

    engine = sessions.get_or_create(session_id)
    sessions.spawn(session_id, engine.start_module(body.module_id, lesson_id, character))
    return {"ok": True, "module_id": body.module_id, "lesson_id": lesson_id}


@router.post("/sessions/{session_id}/messages", status_code=202)
async def send_message(
    session_id: str, body: MessageBody,
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Send the student's reply to the current wait point."""
    engine = _engine(session_id, sessions)
    sessions.spawn(session_id, engine.send_student_message(body.text))
    return {"ok": True}


@router.post("/sessions/{session_id}/reset")
async def reset(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Abandon the current module."""
    engine = _engine(session_id, sessions)
    engine.reset()
    return _snapshot(engine)


@router.delete("/sessions/{session_id}")
async def end_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Drop a session and its engine."""
    if not sessions.remove(session_id):
        raise HTTPException(404, "Session not found")
    return {"ok": True}


@router.post("/sessions/{session_id}/pause")
async def pause(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Hold narration pacing."""
    engine = _engine(session_id, sessions)
    engine.pause()
    return _snapshot(engine)


@router.post("/sessions/{session_id}/resume")
async def resume(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Continue narration pacing."""
    engine = _engine(session_id, sessions)
    engine.resume()
    return _snapshot(engine)


@router.get("/sessions/{session_id}/state")
async def get_state(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Current dialogue, narration bubble and bubble mode."""
    return _snapshot(_engine(session_id, sessions))
