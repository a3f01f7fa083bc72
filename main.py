import logging
import secrets

from fastapi import FastAPI, Depends, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import settings
from db import Base, engine, get_db
from errors import RallyError
from logging_config import configure_logging
import captures
import crowning
import presence
import rallies
import reporting
from schemas import (
    AttributionView,
    CaptureCreate,
    CaptureView,
    CrownResult,
    EventLeaderboardView,
    FeedView,
    LeaderboardView,
    PostCaptureResult,
    PresenceResult,
    PresenceUpdate,
    RallyCreate,
    RallyResult,
)

configure_logging("rally-captures", settings.environment, settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="rally-captures")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)


@app.exception_handler(RallyError)
async def rally_error_handler(request: Request, exc: RallyError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    if not settings.admin_api_key:
        logger.warning("ADMIN_API_KEY not configured - allowing privileged request")
        return
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_api_key):
        raise HTTPException(status_code=403, detail="Admin access required")


@app.get("/")
def home():
    return {"status": "ok", "message": "Rally capture service is running"}


@app.post("/events/{event_id}/captures", response_model=PostCaptureResult)
def post_capture(event_id: int, body: CaptureCreate, db: Session = Depends(get_db)):
    return captures.post_capture(
        db,
        event_id,
        body.user_id,
        body.image_url.strip(),
        caption=body.caption,
        moment_type=body.moment_type,
        is_in_stadium=body.is_in_stadium,
    )


@app.get("/events/{event_id}/feed", response_model=FeedView)
def get_feed(event_id: int, sort: str = "latest", voter_id: int | None = None, db: Session = Depends(get_db)):
    return captures.get_feed(db, event_id, voter_id=voter_id, sort=sort)


@app.get("/events/{event_id}/leaderboard", response_model=EventLeaderboardView)
def event_leaderboard(event_id: int, db: Session = Depends(get_db)):
    return captures.get_event_leaderboard(db, event_id)


@app.post("/events/{event_id}/checkin", response_model=PresenceResult)
def check_in(event_id: int, body: PresenceUpdate, db: Session = Depends(get_db)):
    return presence.check_in(db, event_id, body.user_id)


@app.post("/events/{event_id}/checkout", response_model=PresenceResult)
def check_out(event_id: int, body: PresenceUpdate, db: Session = Depends(get_db)):
    return presence.check_out(db, event_id, body.user_id)


@app.post("/events/{event_id}/crown", response_model=CrownResult, dependencies=[Depends(require_admin)])
def crown(event_id: int, db: Session = Depends(get_db)):
    return crowning.crown_moment_of_game(db, event_id)


@app.post("/captures/{capture_id}/rally", response_model=RallyResult)
def rally(capture_id: int, body: RallyCreate, db: Session = Depends(get_db)):
    return rallies.cast_rally(db, capture_id, body.voter_id)


@app.post("/captures/{capture_id}/report", response_model=CaptureView)
def report(capture_id: int, db: Session = Depends(get_db)):
    return captures.report_capture(db, capture_id)


@app.get("/leaderboard/season", response_model=LeaderboardView)
def season_leaderboard(db: Session = Depends(get_db)):
    return reporting.get_season_leaderboard(db)


@app.get("/attribution", response_model=AttributionView, dependencies=[Depends(require_admin)])
def attribution(days: int = reporting.DEFAULT_WINDOW_DAYS, db: Session = Depends(get_db)):
    return reporting.get_attribution(db, days)
