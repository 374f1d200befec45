"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import chat, geocode, maps
from settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app
app = FastAPI(
    title="Map Search API",
    description="Location search, map navigation sessions and a chat-completion proxy",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(geocode.router, prefix="/geocode", tags=["geocode"])
app.include_router(maps.router, prefix="/map", tags=["map"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Map Search API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
