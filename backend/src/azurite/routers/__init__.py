from fastapi import APIRouter, Depends

from azurite.routers.admin import router as admin_router
from azurite.routers.auth import router as auth_router
from azurite.routers.comments import router as comments_router
from azurite.routers.deps import enforce_ban_gate
from azurite.routers.documentation import router as documentation_router
from azurite.routers.games import router as games_router
from azurite.routers.mods import router as mods_router
from azurite.routers.users import router as users_router

api_router = APIRouter(prefix="/api", dependencies=[Depends(enforce_ban_gate)])
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(games_router)
api_router.include_router(mods_router)
api_router.include_router(comments_router)
api_router.include_router(documentation_router)
api_router.include_router(admin_router)
