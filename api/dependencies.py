"""
FastAPI dependencies for the long-lived objects built in the app lifespan.
"""
from fastapi import Request

from core.draft_manager import DraftManager
from services.scoring_service import ScoringEngine


def get_draft_manager(request: Request) -> DraftManager:
    return request.app.state.draft_manager


def get_scoring_engine(request: Request) -> ScoringEngine:
    return request.app.state.scoring_engine
