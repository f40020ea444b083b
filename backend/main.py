"""
FastAPI Backend for the Adaptive Tutor Engine

Thin HTTP surface over the orchestrator:
- Workflow execution (learning session, evaluation, content update, intervention)
- Conversational turns with the three-tier fallback chain
- Video recommendations and playlists from the curated catalog
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import AsyncGenerator, Optional, List, Dict, Any
import os
import sys
import time
import logging

from dotenv import load_dotenv

load_dotenv()

# Make the package importable when running from a source checkout
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)
package_src = os.path.join(project_root, 'adaptive_tutor', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from adaptive_tutor import __version__
from adaptive_tutor.errors import UnknownActionError, UnknownWorkflowError, ValidationError
from adaptive_tutor.logger import setup_logging, get_logger
from adaptive_tutor.models import VideoSearchCriteria, to_plain
from adaptive_tutor.orchestrator import Orchestrator

setup_logging(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO), use_colors=True)

logger = get_logger("backend.main")

DEFAULT_LANGUAGE = os.getenv("TUTOR_LANGUAGE", "en")

# Singleton orchestrator; it holds no per-request state
_orchestrator_instance: Optional[Orchestrator] = None


def get_orchestrator() -> Orchestrator:
    """Get or create the shared Orchestrator instance."""
    global _orchestrator_instance
    if _orchestrator_instance is None:
        _orchestrator_instance = Orchestrator()
    return _orchestrator_instance


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Warm the shared orchestrator and report whether generation is configured."""
    orchestrator = get_orchestrator()
    if getattr(orchestrator.generator, "available", False):
        logger.success("Text generation configured")
    else:
        logger.warning("OPENAI_API_KEY not set: responses will use static fallbacks")
    yield
    logger.info("Shutting down Adaptive Tutor Engine API")


app = FastAPI(
    title="Adaptive Tutor Engine API",
    description="Emotion-aware lessons, exercise evaluation and video recommendations",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Pydantic Models ====================

class WorkflowRequest(BaseModel):
    context: Dict[str, Any] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)


class ChatRequest(BaseModel):
    action: str = "chat"
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
    history: Optional[List[str]] = None
    emotion: Optional[str] = None


def _client_error(e: Exception) -> HTTPException:
    if isinstance(e, (UnknownWorkflowError, UnknownActionError)):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=422, detail=str(e))


# ==================== API Endpoints ====================

@app.get("/")
async def root(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Adaptive Tutor Engine API",
        "version": __version__,
        "generation_available": getattr(orchestrator.generator, "available", False),
    }


@app.post("/api/workflows/{name}")
async def run_workflow(name: str, request: WorkflowRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Run one named workflow and return its result envelope."""
    path = f"/api/workflows/{name}"
    start = time.time()
    logger.request("POST", path, user_id=request.context.get("user_id"), data={"params": sorted(request.params)})

    try:
        result = await orchestrator.run_workflow(name, request.context, request.params)
    except (UnknownWorkflowError, ValidationError) as e:
        logger.warning(f"Rejected workflow request: {e}")
        raise _client_error(e)

    logger.response(200, path, duration=time.time() - start, data={"steps": result.metadata.get("steps")})
    return result.to_dict()


@app.post("/api/chat")
async def chat(request: ChatRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Answer a chat or help turn; degraded answers carry fallback_tier_used > 0."""
    start = time.time()
    logger.request("POST", "/api/chat", user_id=request.context.get("user_id"), data={"action": request.action})

    try:
        response = await orchestrator.handle_action(
            request.action,
            request.message,
            request.context,
            history=request.history,
            emotion=request.emotion,
        )
    except (UnknownActionError, ValidationError) as e:
        logger.warning(f"Rejected chat request: {e}")
        raise _client_error(e)

    logger.response(
        200,
        "/api/chat",
        duration=time.time() - start,
        data={"fallback_tier_used": response.metadata.get("fallback_tier_used")},
    )
    return response.to_dict()


@app.get("/api/videos/recommendations")
async def video_recommendations(
    topic: str,
    count: int = Query(3, ge=1, le=20),
    difficulty: Optional[str] = None,
    language: Optional[str] = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Ranked catalog videos for a topic."""
    criteria = VideoSearchCriteria(difficulty=difficulty, language=language or DEFAULT_LANGUAGE)
    videos = orchestrator.recommender.recommend(topic, count, criteria)
    return {
        "topic": topic,
        "videos": [
            {**to_plain(video), "embed_url": orchestrator.recommender.embed_url(video.video_id)}
            for video in videos
        ],
    }


@app.get("/api/videos/playlist")
async def video_playlist(
    topic: str,
    difficulty: str = "beginner",
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Educational playlist of up to five videos for a topic."""
    playlist = orchestrator.recommender.create_playlist(topic, difficulty)
    if not playlist.videos:
        raise HTTPException(status_code=404, detail=f"No videos found for topic '{topic}'")
    return to_plain(playlist)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
