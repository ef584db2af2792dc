"""
API Router
"""

from fastapi import APIRouter

from app.api.auth import dev_router as auth_dev_router
from app.api.auth import router as auth_router
from app.api.copy_items import router as copy_items_router
from app.api.friends import router as friends_router
from app.api.grammar import router as grammar_router
from app.api.likes import router as likes_router
from app.api.prompts import router as prompts_router
from app.api.scraps import router as scraps_router
from app.api.study import router as study_router
from app.api.transcriptions import router as transcriptions_router
from app.api.vocabulary import router as vocabulary_router
from app.api.voice import router as voice_router
from app.api.writings import router as writings_router
from app.core.config import settings

api_router = APIRouter()

# 1. Auth (public; dev OTP only when explicitly enabled)
api_router.include_router(auth_router)
if settings.enable_dev_routes:
    api_router.include_router(auth_dev_router)

# 2. App features. Guarded routes declare CurrentUserDep themselves
api_router.include_router(friends_router)
api_router.include_router(study_router)
api_router.include_router(vocabulary_router)

# 3. Web content
api_router.include_router(prompts_router)
api_router.include_router(writings_router)
api_router.include_router(likes_router)
api_router.include_router(scraps_router)
api_router.include_router(copy_items_router)
api_router.include_router(transcriptions_router)

# 4. AI proxies
api_router.include_router(grammar_router)
api_router.include_router(voice_router)
