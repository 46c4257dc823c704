from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import Base, SessionLocal, engine, settings
from models import ScoreRecord
from api import drafts, scores, websocket
from core.broadcaster import DraftBroadcaster
from core.draft_manager import DraftManager
from core.pick_timer import PickTimers
from services.pool_service import ReferenceTablePoolSupplier
from services.reference_table import ReferenceScoreTable, seed_reference_scores
from services.roster_service import SqlRosterSupplier
from services.scoring_service import ScoringEngine

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


def load_reference_table() -> ReferenceScoreTable:
    """
    Load the season reference table, seeding score_records from
    REFERENCE_SCORES_PATH the first time the app runs against an empty table.
    """
    db = SessionLocal()
    try:
        if settings.reference_scores_path and db.query(ScoreRecord).first() is None:
            seeded = ReferenceScoreTable.from_json_file(settings.reference_scores_path)
            seed_reference_scores(db, seeded.records)
        return ReferenceScoreTable.load(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables and wire the long-lived draft objects.
    # Anything already placed on app.state is kept.
    Base.metadata.create_all(bind=engine)

    if not hasattr(app.state, "scoring_engine"):
        app.state.scoring_engine = ScoringEngine(load_reference_table())
    if not hasattr(app.state, "broadcaster"):
        app.state.broadcaster = DraftBroadcaster()
    if not hasattr(app.state, "timers"):
        app.state.timers = PickTimers()
    if not hasattr(app.state, "draft_manager"):
        app.state.draft_manager = DraftManager(
            scoring_engine=app.state.scoring_engine,
            roster_supplier=SqlRosterSupplier(SessionLocal),
            pool_supplier=ReferenceTablePoolSupplier(app.state.scoring_engine.table),
            broadcaster=app.state.broadcaster,
            timers=app.state.timers,
            session_factory=SessionLocal,
        )

    # Timers do not survive a restart; active drafts get theirs back here
    manager = app.state.draft_manager
    db = manager.session_factory()
    try:
        manager.rearm_timers(db)
    finally:
        db.close()

    logger.info(f"Fantasy draft API ready, {len(app.state.scoring_engine.table)} reference records loaded")
    yield
    # Shutdown: pending pick timers must not fire into a closed app
    app.state.timers.cancel_all()


app = FastAPI(
    title="Fantasy Draft API",
    description="Backend API for snake-order fantasy drafts and season scoring",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(drafts.router)
app.include_router(scores.router)
app.include_router(websocket.router)


@app.get("/")
def root():
    return {"message": "Fantasy Draft API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
