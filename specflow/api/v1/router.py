from fastapi import APIRouter

from specflow.api.v1.endpoints import dataflow, projects

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(dataflow.router, prefix="/dataflow", tags=["Data Flow"])

__all__ = ["api_router"]
