# routes.py
from fastapi import FastAPI
from controller.index_controller import index_router
from controller.study_controller import study_router


def register_routes(app: FastAPI) -> None:
    """Register controllers here."""
    app.include_router(index_router)
    app.include_router(study_router)
