import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, LOG_LEVEL

# Routers
from routers.health import router as health_router
from routers.lessons import router as lessons_router
from routers.steps import router as steps_router
from routers.tutor import router as tutor_router

logger = logging.getLogger("fraction-drill")
logging.basicConfig(level=LOG_LEVEL)

app = FastAPI(title="Fraction Drill – Lesson API")

# Allow calls from the renderer dev server and production site
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(tutor_router)  # /greeting
app.include_router(lessons_router)  # /lessons, /sessions/{id}, /sessions/{id}/next
app.include_router(steps_router)  # /sessions/{id}/groups, /fraction, /unit-value, ...
app.include_router(health_router)  # /health/...
