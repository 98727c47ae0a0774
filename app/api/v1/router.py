from fastapi import APIRouter
from app.api.v1.endpoints import documents, signers

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(signers.router, prefix="/signers", tags=["Signers"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])

__all__ = ["api_router"]
