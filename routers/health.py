# routers/health.py
from fastapi import APIRouter, Depends

from config import TUTOR_PROVIDER
from deps.services import get_tutor
from schemas.tutor import TutorHealthOut
from tutor import TutorFeedbackService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/tutor", response_model=TutorHealthOut)
def health_tutor(tutor: TutorFeedbackService = Depends(get_tutor)):
    # configured: the requested provider is the one running (no static fallback)
    provider = getattr(tutor, "name", type(tutor).__name__)
    return {
        "ok": True,
        "provider": provider,
        "requested": TUTOR_PROVIDER,
        "configured": provider == TUTOR_PROVIDER,
    }
