import logging
import random
import threading
import uuid
from collections import OrderedDict
from typing import Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from game import config
from game.graph import caption
from game.progress import ProgressStore
from game.session import Phase, SessionController
from game.templates import (
    BUILT_IN_TEMPLATES,
    build_custom_level,
    creator_preset,
    custom_level_problems,
    get_template,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Equation Quest API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_sessions: "OrderedDict[str, SessionController]" = OrderedDict()
_sessions_lock = threading.Lock()
_store: Optional[ProgressStore] = None


def _get_store() -> ProgressStore:
    global _store
    if _store is None:
        _store = ProgressStore()
    return _store


def _get_session(session_id: str) -> SessionController:
    with _sessions_lock:
        controller = _sessions.get(session_id)
        if controller is None:
            raise HTTPException(status_code=404, detail="Session not found.")
        _sessions.move_to_end(session_id)
    # Other sessions may have moved the totals and badges since this one began
    controller.sync_progress(_get_store().player_progress())
    return controller


def _add_session(controller: SessionController) -> str:
    """Register *controller*, dropping the least recently used sessions."""
    session_id = uuid.uuid4().hex
    with _sessions_lock:
        _sessions[session_id] = controller
        while len(_sessions) > config.MAX_SESSIONS:
            evicted, _ = _sessions.popitem(last=False)
            logger.info("Evicted idle session %s", evicted)
    return session_id


class NewSessionRequest(BaseModel):
    level_index: int = 0
    custom_level_id: Optional[str] = None
    seed: Optional[int] = None


class GuessRequest(BaseModel):
    x: Optional[Union[float, str]] = None
    y: Optional[Union[float, str]] = None


class CustomLevelRequest(BaseModel):
    title: str = ""
    creator: str = ""
    scenario_type: str = "kills-deaths"
    story: str = ""
    total: Optional[Union[float, str]] = None
    diff: Optional[Union[float, str]] = None
    x_label: str = "x"
    y_label: str = "y"


class SessionResponse(BaseModel):
    session_id: str
    phase: str
    title: str
    subtitle: str
    level: dict
    state: dict
    hint: Optional[str] = None
    can_show_hint: bool
    total_points: int
    badges: list[str]


class GuessResponse(BaseModel):
    result: dict
    session: SessionResponse


class RevealResponse(BaseModel):
    steps: list[dict]
    session: SessionResponse


def _session_view(session_id: str, controller: SessionController) -> SessionResponse:
    level = controller.level.to_payload()
    # The answer stays server-side until the level is over
    if controller.phase not in (Phase.SOLVED, Phase.SOLUTION_REVEALED):
        level.pop("solution", None)
    title, subtitle = controller.heading()
    return SessionResponse(
        session_id=session_id,
        phase=controller.phase.value,
        title=title,
        subtitle=subtitle,
        level=level,
        state=controller.state.to_dict(),
        hint=controller.hint(),
        can_show_hint=controller.can_show_hint,
        total_points=controller.progress.total_points,
        badges=list(controller.progress.badges),
    )


# ── Templates ────────────────────────────────────────────────────────────

@app.get("/api/templates")
def list_templates():
    return [t.to_dict() for t in BUILT_IN_TEMPLATES]


@app.get("/api/templates/{scenario_type}/preset")
def get_preset(scenario_type: str):
    try:
        return creator_preset(scenario_type)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Sessions ─────────────────────────────────────────────────────────────

@app.post("/api/sessions", response_model=SessionResponse)
def create_session(req: NewSessionRequest):
    store = _get_store()
    controller = SessionController(
        tracker=store,
        progress=store.player_progress(),
        rng=random.Random(req.seed) if req.seed is not None else None,
    )
    if req.custom_level_id:
        try:
            level = store.get_custom_level(req.custom_level_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Custom level not found.")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        controller.play_custom(level, req.level_index)
    else:
        controller.play_built_in(req.level_index)

    session_id = _add_session(controller)
    return _session_view(session_id, controller)


@app.get("/api/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str):
    return _session_view(session_id, _get_session(session_id))


@app.post("/api/sessions/{session_id}/guess", response_model=GuessResponse)
def submit_guess(session_id: str, req: GuessRequest):
    controller = _get_session(session_id)
    result = controller.submit_guess(req.x, req.y)
    return GuessResponse(result=result.to_dict(),
                         session=_session_view(session_id, controller))


@app.post("/api/sessions/{session_id}/hint", response_model=SessionResponse)
def toggle_hint(session_id: str):
    controller = _get_session(session_id)
    controller.toggle_hint()
    return _session_view(session_id, controller)


@app.post("/api/sessions/{session_id}/reveal", response_model=RevealResponse)
def reveal_solution(session_id: str):
    controller = _get_session(session_id)
    steps = controller.reveal_solution()
    return RevealResponse(steps=steps, session=_session_view(session_id, controller))


@app.post("/api/sessions/{session_id}/retry", response_model=SessionResponse)
def retry_level(session_id: str):
    controller = _get_session(session_id)
    controller.retry()
    return _session_view(session_id, controller)


@app.post("/api/sessions/{session_id}/next", response_model=SessionResponse)
def next_level(session_id: str):
    controller = _get_session(session_id)
    try:
        controller.next_level()
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_view(session_id, controller)


@app.get("/api/sessions/{session_id}/graph")
def get_graph(session_id: str, x: Optional[str] = None, y: Optional[str] = None):
    controller = _get_session(session_id)
    projection = controller.graph(x, y)
    payload = projection.to_dict()
    if controller.phase not in (Phase.SOLVED, Phase.SOLUTION_REVEALED):
        payload["solution_marker"] = None
    payload["caption"] = caption(projection, controller.level)
    return payload


@app.delete("/api/sessions/{session_id}")
def end_session(session_id: str):
    with _sessions_lock:
        if _sessions.pop(session_id, None) is None:
            raise HTTPException(status_code=404, detail="Session not found.")
    return {"deleted": True}


# ── Progress and custom levels ───────────────────────────────────────────

@app.get("/api/progress")
def get_progress():
    return _get_store().stats()


@app.get("/api/levels")
def list_custom_levels():
    return _get_store().get_custom_levels()


@app.post("/api/levels")
def save_custom_level(req: CustomLevelRequest):
    problems = custom_level_problems(req.title, req.story, req.total, req.diff)
    if problems:
        raise HTTPException(status_code=400, detail=" ".join(problems))
    try:
        get_template(req.scenario_type)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e))

    level = build_custom_level(
        title=req.title,
        story=req.story,
        total=req.total,
        diff=req.diff,
        x_label=req.x_label,
        y_label=req.y_label,
        scenario_type=req.scenario_type,
        creator=req.creator,
    )
    record = _get_store().save_custom_level(level)
    logger.info("Saved custom level %s (%r)", record["id"], level.title)
    return record


@app.delete("/api/levels/{level_id}")
def delete_custom_level(level_id: str):
    if not _get_store().delete_custom_level(level_id):
        raise HTTPException(status_code=404, detail="Custom level not found.")
    return {"deleted": True}
