from fastapi import APIRouter

from voicebot.api.routers.meta import router as meta_router
from voicebot.api.routers.webhooks import router as webhooks_router

router = APIRouter()

router.include_router(meta_router)
router.include_router(webhooks_router)
