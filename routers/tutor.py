from fastapi import APIRouter, Depends

from config import TUTOR_TIMEOUT_S
from deps.services import get_tutor
from schemas.tutor import GreetingOut
from tutor import TutorFeedbackService, fetch_greeting

router = APIRouter(tags=["tutor"])


@router.get("/greeting", response_model=GreetingOut)
async def greeting(tutor: TutorFeedbackService = Depends(get_tutor)):
    # Never fails: the menu renders with the default greeting if the tutor is down.
    return {"message": await fetch_greeting(tutor, TUTOR_TIMEOUT_S)}
