"""FastAPI main application."""

from contextlib import asynccontextmanager
from typing import List, Tuple

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .gateways import create_gateway
from .services.notifier import TelegramNotifier
from .services.orchestrator import OrchestrationEngine
from .utils.logger import init_app_logger
from .api.v1 import deps, messages, conversations, artifacts, workers, events


SERVICE_NAME = "Office Orchestrator"

# Initialize logger
logger = init_app_logger(settings)

# Global engine instance
engine_instance: OrchestrationEngine = None


def build_engine(config=settings) -> OrchestrationEngine:
    """Wire the engine and its collaborators from settings."""
    gateway = create_gateway(config)
    notifier = TelegramNotifier(bot_token=config.telegram_bot_token, api_base=config.telegram_api_base)
    return OrchestrationEngine.from_settings(config, gateway=gateway, notifier=notifier)


def _mask(secret: str) -> str:
    return secret[:8] + "..." + secret[-4:] if len(secret) > 12 else "***"


def startup_summary(config=settings) -> List[Tuple[str, List[str]]]:
    """Sections of the startup banner as (heading, lines)."""
    capability = [f"Backend: {config.capability_backend}"]
    if config.capability_backend.lower() == "openai":
        capability += [
            f"API Base: {config.llm_api_base}",
            f"Model: {config.llm_model}",
            f"API Key: {_mask(config.llm_api_key)}" if config.llm_api_key
            else "API Key: Not set (keyword fallback only)",
        ]

    return [
        ("📡 Server", [
            f"Listening: {config.host}:{config.port} (debug={config.debug})",
            f"Logging: {config.log_level} -> {config.log_file or 'console'}",
        ]),
        ("🤖 Capability", capability),
        ("⚙️  Orchestration", [
            f"Settlement window: {config.settlement_min_seconds}-{config.settlement_max_seconds}s",
            f"Assignment wait: {config.assignment_wait_seconds}s",
            f"Review links: {config.review_base_url}",
            f"Telegram: {'configured' if config.telegram_bot_token else 'log only'}",
        ]),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine on startup and shut it down on exit."""
    global engine_instance

    rule = "=" * 70
    logger.info(rule)
    logger.info(f"Starting {SERVICE_NAME} {__version__}")
    for heading, lines in startup_summary(settings):
        logger.info(f"{heading}:")
        for line in lines:
            logger.info(f"  {line}")

    engine_instance = build_engine(settings)
    deps.engine = engine_instance
    logger.info(
        f"🚀 Engine ready: gateway={engine_instance.gateway.get_gateway_type()}, "
        f"workers={', '.join(w.name for w in engine_instance.directory.list())}"
    )
    logger.info(f"📚 API docs at http://{settings.host}:{settings.port}/docs")
    logger.info(rule)

    yield

    logger.info(f"Stopping {SERVICE_NAME}; pending settlements are cancelled")
    if engine_instance:
        await engine_instance.shutdown()
        deps.engine = None
    logger.info(f"✅ {SERVICE_NAME} stopped")



# Create FastAPI application
app = FastAPI(
    title=SERVICE_NAME,
    description="Conversation-driven task orchestration for a small virtual office",
    version=__version__,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(messages.router)
app.include_router(conversations.router)
app.include_router(artifacts.router)
app.include_router(workers.router)
app.include_router(events.router)


@app.get("/health")
async def health():
    """
    Simple health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "officeflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
