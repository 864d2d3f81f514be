"""Main application file - Work-Log Monitoring Service"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api_routes import router as api_router
from backend_client import WorkLogClient
from config import polling_config
from poll_scheduler import PollScheduler, VisibilityObserver
from services import WorkLogMonitor


def create_app(
    source=None,
    monitor: Optional[WorkLogMonitor] = None,
    visibility: Optional[VisibilityObserver] = None,
    autostart: bool = polling_config.autostart
) -> FastAPI:
    """Wire the monitor, the scheduler and the routes into one application"""
    source = source or WorkLogClient()
    monitor = monitor or WorkLogMonitor()
    visibility = visibility or VisibilityObserver()
    scheduler = PollScheduler(monitor, source, visibility)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if autostart:
            scheduler.enable()
        yield
        scheduler.stop()
        await scheduler.drain()
        close = getattr(source, 'close', None)
        if close is not None:
            close()

    app = FastAPI(title="Work-Log Monitoring Service", version="1.0.0", lifespan=lifespan)
    app.state.monitor = monitor
    app.state.scheduler = scheduler
    app.state.visibility = visibility

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, tags=["api"])
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info"
    )
