from pydantic import BaseModel


class GreetingOut(BaseModel):
    message: str


class TutorHealthOut(BaseModel):
    ok: bool
    provider: str
    requested: str
    configured: bool
