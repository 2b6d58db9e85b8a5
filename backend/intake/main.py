from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake.api.sessions import router as sessions_router
from intake.core.config import settings, setup_logging
from intake.services.session_store import store

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # pending countdowns and analyzer calls must not outlive the loop
    store.close_all()

app = FastAPI(title="Student ID Intake API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router)

@app.get("/health")
def health():
    return {"ok": True}
