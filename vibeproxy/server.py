"""FastAPI application exposing the proxy, project and agent routes."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from vibeproxy.config import Config
from vibeproxy.constants import FEATURES, SERVICE_NAME, SERVICE_VERSION
from vibeproxy.errors import NotFoundError, VibeProxyError
from vibeproxy.github import RemoteSync
from vibeproxy.graph import run_agent
from vibeproxy.handlers.chat import ChatHandler
from vibeproxy.handlers.generate import GenerateHandler
from vibeproxy.llm import LLM
from vibeproxy.projects import ensure_workspace, repo_slug
from vibeproxy.scaffold import generate_scaffold
from vibeproxy.services import Services, build_services
from vibeproxy.tools.toolset import ToolSet
from vibeproxy.utils.logging import configure_logging
from vibeproxy.workspace import Workspace

logger = logging.getLogger(__name__)


class ChatCompletionMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    messages: list[ChatCompletionMessage]
    system: Optional[str] = None


class CreateProjectRequest(BaseModel):
    project_name: str = Field(min_length=1)
    github_token: str
    complexity: Literal["simple", "complex"] = "simple"
    user_id: Optional[str] = None


class AgentRequest(BaseModel):
    task: str = Field(min_length=1)
    github_token: str


class GenerateRequest(BaseModel):
    prompt: str = Field(min_length=1)
    github_token: str
    feature_type: str = "component"


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    github_token: str
    session_id: Optional[str] = None


def get_services(request: Request) -> Services:
    return request.app.state.services


def create_app(config: Optional[Config] = None, services: Optional[Services] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Configuration (loaded from the environment when omitted)
        services: Pre-built services, used as-is (tests inject stubs here)

    Returns:
        FastAPI app
    """
    if services is None:
        config = config or Config.load()
        configure_logging(config.log_level)
        services = build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.services.aclose()

    app = FastAPI(title="VibeCode Proxy", version=SERVICE_VERSION, lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(VibeProxyError)
    async def vibeproxy_error_handler(request: Request, exc: VibeProxyError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "features": FEATURES,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/v1/caps")
    async def caps() -> dict[str, Any]:
        return {
            "chat_models": LLM.describe_models(),
            "features": {feature: True for feature in FEATURES},
            "agent_tools": ToolSet.describe(),
            "version": SERVICE_VERSION,
        }

    @app.post("/v1/chat/completions")
    async def chat_completions(
        payload: ChatCompletionRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        response = await services.llm.chat(
            [m.model_dump() for m in payload.messages],
            system=payload.system,
            model=payload.model,
            max_tokens=payload.max_tokens,
        )
        return LLM.to_openai_completion(response)

    @app.post("/v1/projects/create")
    async def create_project(
        payload: CreateProjectRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        name = repo_slug(payload.project_name)
        files = generate_scaffold(payload.complexity, name)

        async with services.github_factory(payload.github_token) as github:
            repo = await github.create_repository(
                name, description=f"{payload.complexity} app created with VibeCode"
            )
            project = services.projects.create(
                name=payload.project_name,
                complexity=payload.complexity,
                owner=repo["owner"]["login"],
                repo_name=repo["name"],
                github_repo=repo["html_url"],
                github_clone_url=repo["clone_url"],
                default_branch=repo.get("default_branch"),
                user_id=payload.user_id,
                initial_structure=list(files),
            )
            services.store.put(project.id, Workspace(project.id, dict(files)))
            report = await RemoteSync(github).mirror_files(project.target, files)

        logger.info("Created project %s (%s) with %d file(s)", project.id, project.github_repo, len(files))
        return {
            "project_id": project.id,
            "github_repo_url": project.github_repo,
            "clone_url": project.github_clone_url,
            "complexity": project.complexity,
            "initial_structure": project.initial_structure,
            "commits": report.refs,
            "sync_failures": report.failures,
        }

    @app.get("/v1/projects")
    async def list_projects(
        user_id: Optional[str] = None, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        projects = services.projects.list_projects(user_id)
        return {"projects": [project.model_dump(mode="json") for project in projects]}

    @app.get("/v1/projects/{project_id}")
    async def get_project(project_id: str, services: Services = Depends(get_services)) -> dict[str, Any]:
        project = services.projects.get(project_id)
        files = services.store.get(project_id).paths() if services.store.has(project_id) else []
        return {**project.model_dump(mode="json"), "files": files}

    @app.post("/v1/projects/{project_id}/agent")
    async def run_project_agent(
        project_id: str, payload: AgentRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        project = services.projects.get(project_id)
        async with services.github_factory(payload.github_token) as github:
            await ensure_workspace(services.store, project, github)
            result = await run_agent(
                payload.task,
                project.id,
                llm=services.llm,
                store=services.store,
                tools=services.tools,
                sync=RemoteSync(github),
                target=project.target,
                run_logger=services.run_logger,
            )
        return result.to_response()

    @app.post("/v1/projects/{project_id}/generate")
    async def generate_feature(
        project_id: str, payload: GenerateRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        project = services.projects.get(project_id)
        async with services.github_factory(payload.github_token) as github:
            return await GenerateHandler(services).handle(project, payload.prompt, payload.feature_type, github)

    @app.post("/v1/projects/{project_id}/chat")
    async def project_chat(
        project_id: str, payload: ChatRequest, services: Services = Depends(get_services)
    ) -> dict[str, Any]:
        project = services.projects.get(project_id)
        async with services.github_factory(payload.github_token) as github:
            return await ChatHandler(services).handle(project, payload.message, github, payload.session_id)

    return app
