from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging, random, uuid, typing as t

# ---- Engine imports ----
from assessment_core.codec import decode_assessment, encode_result
from assessment_core.config import CORS_ORIGINS
from assessment_core.errors import EngineError, InvalidTransition, RetryNotAllowed
from assessment_core.review_export import to_csv as review_to_csv, to_json as review_to_json
from assessment_core.session import Phase, Session
from assessment_core.types import (
    DragWordsItem,
    ImageDragDropItem,
    ImageHotspotItem,
    Item,
    MarkWordsItem,
    MultiSelectFeedbackItem,
    SingleChoiceItem,
)

log = logging.getLogger(__name__)

# one Session per learner attempt; never shared between requests of different sids
SESS: dict[str, Session] = {}

app = FastAPI(title="Assessment Engine API")


@app.get("/")
def root():
    return {"status": "ok", "service": "assessment-engine"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(CORS_ORIGINS),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class StartReq(BaseModel):
    assessment: dict[str, t.Any] | str
    seed: int | None = None

class ResponseReq(BaseModel):
    item_id: str
    response: t.Any = None

class TickReq(BaseModel):
    seconds: float = 1.0

# ---- Helpers ----
def _session(sid: str) -> Session:
    sess = SESS.get(sid)
    if not sess:
        raise HTTPException(404, "session not found")
    return sess


def _raise_for(err: EngineError | None) -> None:
    if err is None:
        return
    status = 409 if isinstance(err, (InvalidTransition, RetryNotAllowed)) else 422
    raise HTTPException(status, err.to_dict())


def _serialize_item(it: Item | None) -> dict[str, t.Any] | None:
    """Learner-facing view of an item: display data only, never the answer."""

    if it is None:
        return None
    out: dict[str, t.Any] = {"id": it.id, "kind": it.kind, "prompt": it.prompt, "points": it.points}
    if isinstance(it, SingleChoiceItem):
        out["options"] = list(it.options)
    elif isinstance(it, MarkWordsItem):
        out["text"] = it.text
    elif isinstance(it, ImageHotspotItem):
        out["image_url"] = it.image_url
        out["hotspots"] = [{"id": h.id, "x": h.x, "y": h.y, "radius": h.radius} for h in it.hotspots]
    elif isinstance(it, DragWordsItem):
        out["text"] = it.text
        out["word_bank"] = list(it.word_bank)
        out["targets"] = [{"id": tg.target_id, "placeholder": tg.placeholder} for tg in it.targets]
    elif isinstance(it, MultiSelectFeedbackItem):
        out["options"] = [o.option_text for o in it.options]
        out["allow_multiple"] = it.allow_multiple
    elif isinstance(it, ImageDragDropItem):
        out["image_url"] = it.image_url
        out["drop_zones"] = [
            {"id": z.id, "x": z.x, "y": z.y, "width": z.width, "height": z.height, "label": z.label}
            for z in it.drop_zones
        ]
        out["draggables"] = [{"id": d.draggable_id, "text": d.text} for d in it.draggables]
    return out


def _state(sid: str, sess: Session) -> dict[str, t.Any]:
    body: dict[str, t.Any] = {"session_id": sid, **sess.to_dict(), "item": _serialize_item(sess.current_item)}
    if sess.phase is Phase.COMPLETED:
        body["result"] = encode_result(sess.current_result)
    return body

# ---- Health ----
@app.get("/health")
def health():
    return {"status": "ok", "active_sessions": len(SESS)}

# ---- Session endpoints ----
@app.post("/sessions/start")
def start(req: StartReq):
    report = decode_assessment(req.assessment)
    if report.assessment is None:
        raise HTTPException(422, {"errors": report.messages()})
    if not report.assessment.items:
        raise HTTPException(422, {"errors": report.messages() or [{"code": "empty", "message": "assessment has no items"}]})
    rng = random.Random(req.seed) if req.seed is not None else None
    sess = Session(report.assessment, rng=rng)
    _raise_for(sess.start())
    sid = str(uuid.uuid4())
    SESS[sid] = sess
    log.debug("api session started sid=%s items=%d dropped=%d", sid, len(report.assessment.items), len(report.errors))
    return {**_state(sid, sess), "warnings": report.messages()}

@app.get("/sessions/{sid}")
def state(sid: str):
    return _state(sid, _session(sid))

@app.post("/sessions/{sid}/response")
def submit(sid: str, req: ResponseReq):
    sess = _session(sid)
    _raise_for(sess.submit_response(req.item_id, req.response))
    return _state(sid, sess)

@app.post("/sessions/{sid}/tick")
def tick(sid: str, req: TickReq | None = Body(None)):
    sess = _session(sid)
    _raise_for(sess.tick(req.seconds if req is not None else 1.0))
    return _state(sid, sess)

@app.post("/sessions/{sid}/advance")
def advance(sid: str):
    sess = _session(sid)
    _raise_for(sess.advance())
    return _state(sid, sess)

@app.post("/sessions/{sid}/back")
def back(sid: str):
    sess = _session(sid)
    _raise_for(sess.go_back())
    return _state(sid, sess)

@app.post("/sessions/{sid}/complete")
def complete(sid: str):
    sess = _session(sid)
    _raise_for(sess.complete())
    return _state(sid, sess)

@app.post("/sessions/{sid}/retry")
def retry(sid: str):
    sess = _session(sid)
    nxt = sess.retry()
    if isinstance(nxt, EngineError):
        _raise_for(nxt)
    _raise_for(nxt.start())
    SESS[sid] = nxt
    return _state(sid, nxt)

@app.get("/sessions/{sid}/result")
def result(sid: str):
    sess = _session(sid)
    if sess.phase is not Phase.COMPLETED:
        raise HTTPException(409, {"code": "invalid_transition", "message": "session is not completed"})
    return encode_result(sess.current_result)

@app.get("/sessions/{sid}/review")
def review(sid: str):
    sess = _session(sid)
    if sess.phase is not Phase.COMPLETED:
        raise HTTPException(409, {"code": "invalid_transition", "message": "session is not completed"})
    return {"session_id": sid, **review_to_json(sess.review())}

@app.get("/sessions/{sid}/review.csv")
def review_csv(sid: str):
    sess = _session(sid)
    if sess.phase is not Phase.COMPLETED:
        raise HTTPException(409, {"code": "invalid_transition", "message": "session is not completed"})
    return Response(
        content=review_to_csv(sess.review()),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{sid}_review.csv\""},
    )

@app.delete("/sessions/{sid}")
def discard(sid: str):
    if SESS.pop(sid, None) is None:
        raise HTTPException(404, "session not found")
    return {"ok": True}
