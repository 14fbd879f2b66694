"""FastAPI application exposing deployment runs over HTTP."""

import logging
import os
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from autodeploy import __version__
from autodeploy.config import Settings
from autodeploy.ids import new_run_id
from autodeploy.pipeline import DeploymentPipeline
from autodeploy.state import RunStore
from autodeploy.types import DeploymentRequest

logger = logging.getLogger(__name__)


# Pydantic models
class DeploymentBody(BaseModel):
    description: Optional[str] = None
    repo: Optional[str] = None
    branch: Optional[str] = None
    env_overrides: Dict[str, str] = Field(default_factory=dict)
    tags: Dict[str, str] = Field(default_factory=dict)


class DeploymentCreated(BaseModel):
    id: str


class RunStatus(BaseModel):
    id: str
    status: str
    created_at: str
    service_url: Optional[str] = None
    error: Optional[str] = None


class RunLogs(BaseModel):
    id: str
    step: str
    logs: List[dict]


def _not_found(run_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "code": "deployment_not_found",
            "message": f"Deployment {run_id} not found",
            "hint": "Check the deployment ID",
        },
    )


def create_app(store: Optional[RunStore] = None, settings: Optional[Settings] = None,
               pipeline_factory: Callable[..., DeploymentPipeline] = DeploymentPipeline) -> FastAPI:
    """
    Build the API.

    Args:
        store: Run store shared by all requests (a new one if not given)
        settings: Execution settings (read from the environment per run if not given)
        pipeline_factory: Creates the pipeline for a request
    """
    store = store if store is not None else RunStore()
    app = FastAPI(
        title="autodeploy API",
        description="Natural-language driven application deployment",
        version=__version__,
    )
    app.state.store = store

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/deployments", response_model=DeploymentCreated)
    async def create_deployment(body: DeploymentBody, background_tasks: BackgroundTasks):
        """Start a deployment run in the background."""
        if not body.description or not body.repo:
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "missing_fields",
                    "message": "Missing required fields: description and repo",
                    "hint": "Send a JSON body with 'description' and 'repo'",
                },
            )

        request = DeploymentRequest(
            description=body.description,
            repo=body.repo,
            branch=body.branch,
            env_overrides=dict(body.env_overrides),
            tags=dict(body.tags),
        )
        run_id = new_run_id()
        store.create(run_id)
        pipeline = pipeline_factory(request, settings=settings or Settings.from_env(), run_id=run_id, store=store)
        background_tasks.add_task(pipeline.execute)
        logger.info("Started deployment %s for %s", run_id, body.repo)
        return DeploymentCreated(id=run_id)

    @app.get("/deployments/{run_id}", response_model=RunStatus)
    async def get_deployment(run_id: str):
        run = store.get(run_id)
        if run is None:
            raise _not_found(run_id)
        return RunStatus(
            id=run.id,
            status=run.status,
            created_at=run.created_at,
            service_url=run.service_url,
            error=run.error,
        )

    @app.get("/deployments/{run_id}/logs", response_model=RunLogs)
    async def get_deployment_logs(run_id: str, step: Optional[str] = None):
        logs = store.get_logs(run_id, step)
        if logs is None:
            raise _not_found(run_id)
        return RunLogs(id=run_id, step=step or "all", logs=[entry.to_dict() for entry in logs])

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    return app


def serve(host: str = "0.0.0.0", port: Optional[int] = None) -> None:
    """Load .env and run the API with uvicorn."""
    load_dotenv()
    port = port or int(os.getenv("PORT", 3000))
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    serve()
