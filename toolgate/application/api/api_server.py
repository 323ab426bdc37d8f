from typing import Optional
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from toolgate.application.api.route.agent import router as agent_router
from toolgate.application.plugins.skills_loader import SkillsLoader
from toolgate.domain.orchestration.core.runner import AgentRunner
from toolgate.errors import (
    ConfigError, ConversationNotFoundError, TaskNotFoundError, ToolgateError, ValidationError
)
from toolgate.infrastructure.config.settings import DEFAULT_CONFIG_PATH, load_config
from toolgate.infrastructure.observability.logging import setup_logging

logger = structlog.get_logger(__name__)

DEFAULT_SKILLS_DIR = "./skills"


def _error_response(status_code: int, error: ToolgateError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error.code, "message": error.message})


def load_skills(runner: AgentRunner, skills_dir: str = DEFAULT_SKILLS_DIR):
    """Register tools and instructions from the skills directory on the runner"""

    loader = SkillsLoader(skills_dir)
    for tool in loader.load_tools():
        runner.register_tool(tool)
    runner.skill_instructions = loader.load_skill_instructions()


def create_app(runner: AgentRunner) -> FastAPI:
    app = FastAPI(title="toolgate daemon", version=runner.get_version())
    app.state.runner = runner

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConversationNotFoundError)
    async def conversation_not_found(request: Request, exc: ConversationNotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(TaskNotFoundError)
    async def task_not_found(request: Request, exc: TaskNotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(ConfigError)
    async def invalid_config(request: Request, exc: ConfigError):
        return _error_response(400, exc)

    @app.exception_handler(ValidationError)
    async def invalid_input(request: Request, exc: ValidationError):
        return _error_response(400, exc)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "invalid_request", "details": jsonable_encoder(exc.errors())})

    @app.exception_handler(ToolgateError)
    async def agent_failure(request: Request, exc: ToolgateError):
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
        return _error_response(500, exc)

    app.include_router(agent_router)
    return app


def main(config_path: Optional[str] = None):
    config = load_config(config_path or os.getenv("TOOLGATE_CONFIG", DEFAULT_CONFIG_PATH))
    setup_logging(log_level=config.logging.level, log_format=config.logging.format)

    runner = AgentRunner(config)
    try:
        load_skills(runner, os.getenv("TOOLGATE_SKILLS_DIR", DEFAULT_SKILLS_DIR))
    except (OSError, ImportError, SyntaxError) as e:
        logger.warning("Failed to load one or more skills; continuing without them", error=str(e))

    app = create_app(runner)
    logger.info("Starting daemon", host=config.daemon.host, port=config.daemon.port)
    uvicorn.run(app, host=config.daemon.host, port=config.daemon.port)


if __name__ == "__main__":
    main()
