from fastapi import APIRouter

from src.identity.api.v1 import alumni, auth, identities, invitations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(invitations.router)
api_router.include_router(alumni.router)
api_router.include_router(identities.router)
