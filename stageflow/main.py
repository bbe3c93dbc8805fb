import logging
from fastapi import FastAPI

from stageflow.core.config import settings
from stageflow.core.exception_handlers import setup_exception_handlers
from stageflow.controllers import (
    health_controller,
    tables_controller,
    stages_controller,
    flows_controller,
    suggestions_controller,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI app
app = FastAPI(title=settings.APP_TITLE)
setup_exception_handlers(app)

# Include routers
app.include_router(health_controller.router)
app.include_router(tables_controller.router)
app.include_router(stages_controller.router)
app.include_router(flows_controller.router)
app.include_router(suggestions_controller.router)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Stageflow API",
        "docs": "/docs",
        "version": "0.1.0"
    }
