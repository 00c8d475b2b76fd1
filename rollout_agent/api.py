"""REST API for the rollout agent.

Exposes the synchronous analysis endpoint, the A2A task endpoints and the
agent card. Tasks live in an in-memory store owned by this module.
"""

import asyncio
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, Set

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from rollout_agent import __version__
from rollout_agent.a2a.executor import AnalysisExecutor
from rollout_agent.a2a.tasks import InMemoryTaskStore, RequestContext
from rollout_agent.a2a.types import (
    DataPart,
    InvalidTaskTransitionError,
    Message,
    TaskNotCancelableError,
    TaskNotFoundError,
    TaskState,
    TextPart,
)
from rollout_agent.agents.kubernetes_agent import KubernetesAgent, ReasoningEngine
from rollout_agent.config import Config, load_config
from rollout_agent.model import AnalysisRequest
from rollout_agent.plugins.github import GitHubPRPlugin
from rollout_agent.plugins.kubernetes import KubernetesPlugin
from rollout_agent.service.analysis import AnalysisService
from rollout_agent.service.policy import error_decision, system_error_decision

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Used by the unhandled-error handler
    app.state.promote_on_error = get_config().promote_on_error
    yield


app = FastAPI(
    title="Rollout Agent API",
    description="Kubernetes canary analysis agent",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Models ---


class PartPayload(BaseModel):
    kind: Literal["text", "data"] = "text"
    text: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class MessagePayload(BaseModel):
    parts: List[PartPayload] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> Message:
        parts = []
        for part in self.parts:
            if part.kind == "text" and part.text is not None:
                parts.append(TextPart(part.text))
            elif part.kind == "data" and part.data is not None:
                parts.append(DataPart(part.data))
        return Message(parts=parts, metadata=dict(self.metadata))


class TaskSendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: MessagePayload
    task_id: Optional[str] = Field(default=None, alias="taskId")  # Follow-up on an existing task
    blocking: bool = True  # False returns right away and runs the analysis in the background


# --- Dependencies ---


@lru_cache
def get_config() -> Config:
    return load_config()


@lru_cache
def get_engine() -> ReasoningEngine:
    config = get_config()
    return KubernetesAgent(config, plugins=[KubernetesPlugin(config), GitHubPRPlugin(config)])


@lru_cache
def get_task_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


def get_executor(
    engine: ReasoningEngine = Depends(get_engine),
    task_store: InMemoryTaskStore = Depends(get_task_store),
    config: Config = Depends(get_config),
) -> AnalysisExecutor:
    return AnalysisExecutor(engine, task_store=task_store, promote_on_error=config.promote_on_error)


# Strong references to non-blocking executions until they finish
background_executions: Set[asyncio.Task] = set()


def _log_background_result(execution: asyncio.Task) -> None:
    background_executions.discard(execution)
    if not execution.cancelled() and execution.exception() is not None:
        logger.error("Background task execution failed", error=str(execution.exception()))


# --- Exception handlers ---


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        logger.debug("Endpoint not found", path=request.url.path)
        return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
    return await http_exception_handler(request, exc)


@app.exception_handler(TaskNotFoundError)
async def handle_task_not_found(request: Request, exc: TaskNotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(TaskNotCancelableError)
async def handle_task_not_cancelable(request: Request, exc: TaskNotCancelableError):
    return JSONResponse(status_code=409, content={"error": str(exc), "state": exc.state.value})


@app.exception_handler(InvalidTaskTransitionError)
async def handle_invalid_transition(request: Request, exc: InvalidTaskTransitionError):
    return JSONResponse(status_code=409, content={"error": str(exc), "state": exc.current.value})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled exception", path=request.url.path)
    promote_on_error = getattr(request.app.state, "promote_on_error", True)
    record = system_error_decision(exc, promote_on_error=promote_on_error)
    return JSONResponse(status_code=500, content=record.to_dict())


# --- Endpoints ---


@app.get("/health")
async def health():
    return {"status": "healthy", "version": __version__}


@app.get("/.well-known/agent.json")
async def agent_card(request: Request):
    """A2A agent card."""
    return {
        "name": "Kubernetes Rollout Agent",
        "description": "Analyzes Kubernetes canary deployments and recommends promote or rollback",
        "url": str(request.base_url).rstrip("/") + "/a2a",
        "version": __version__,
        "capabilities": {"streaming": False, "pushNotifications": False},
        "defaultInputModes": ["text"],
        "defaultOutputModes": ["text", "data"],
        "skills": [
            {
                "id": "kubernetes-analysis",
                "name": "Kubernetes canary analysis",
                "description": "Inspects pods, logs, events and metrics to decide whether a canary should be promoted",
                "tags": ["kubernetes", "canary", "rollout", "sre"],
            }
        ],
    }


@app.post("/a2a/analyze")
async def analyze(
    request: AnalysisRequest,
    engine: ReasoningEngine = Depends(get_engine),
    config: Config = Depends(get_config),
):
    """Run one analysis and return the decision."""
    logger.info("Received analysis request", user_id=request.user_id)
    try:
        record = await AnalysisService(engine).analyze(request)
    except Exception as e:
        logger.exception("Error processing analysis request", user_id=request.user_id, context=request.context)
        record = error_decision(e, promote_on_error=config.promote_on_error)
        return JSONResponse(status_code=500, content=record.to_dict())
    return record.to_dict()


@app.post("/a2a/tasks")
async def send_task(
    request: TaskSendRequest,
    executor: AnalysisExecutor = Depends(get_executor),
    task_store: InMemoryTaskStore = Depends(get_task_store),
):
    """Submit a message as a new task, or as a follow-up on an existing one."""
    task = None
    if request.task_id:
        task = task_store.get(request.task_id)
        if task is None:
            raise TaskNotFoundError(request.task_id)
        if task.is_terminal or task.state is TaskState.WORKING:
            raise InvalidTaskTransitionError(task.id, task.state, TaskState.WORKING)

    context = RequestContext(message=request.message.to_message(), task=task)
    event_queue = task_store.queue_for(context.task_id)

    if request.blocking:
        task = await executor.execute(context, event_queue)
        return task.to_dict()

    execution = asyncio.create_task(executor.execute(context, event_queue))
    background_executions.add(execution)
    execution.add_done_callback(_log_background_result)
    # Let the execution record its task before answering
    await asyncio.sleep(0)
    task = task_store.get(context.task_id)
    if task is None:
        raise TaskNotFoundError(context.task_id)
    return task.to_dict()


@app.get("/a2a/tasks/{task_id}")
async def get_task(task_id: str, task_store: InMemoryTaskStore = Depends(get_task_store)):
    task = task_store.get(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task.to_dict()


@app.post("/a2a/tasks/{task_id}/cancel")
async def cancel_task(
    task_id: str,
    executor: AnalysisExecutor = Depends(get_executor),
    task_store: InMemoryTaskStore = Depends(get_task_store),
):
    task = task_store.get(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    task = await executor.cancel(RequestContext(task=task), task_store.queue_for(task_id))
    return task.to_dict()


@app.get("/a2a/tasks/{task_id}/events")
async def task_events(task_id: str, task_store: InMemoryTaskStore = Depends(get_task_store)):
    """Events published for the task since the last call."""
    if task_store.get(task_id) is None:
        raise TaskNotFoundError(task_id)
    return [event.to_dict() for event in task_store.queue_for(task_id).drain()]
