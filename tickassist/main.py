"""Main FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tickassist import __version__
from tickassist.api.endpoints import router
from tickassist.config import get_settings
from tickassist.services.conversation import close_conversation_service
from tickassist.utils.logging import setup_logging

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_conversation_service()


# Create FastAPI application
app = FastAPI(
    title="TickAssist",
    description=(
        "A conversational assistant that manages TickTick tasks and projects "
        "through tool calls against Claude, OpenAI, Grok or Gemini."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Conversation",
            "description": "Send messages, read history and stop running turns.",
        },
        {
            "name": "Confirmation",
            "description": "Approve or reject destructive tool calls while a turn waits.",
        },
        {
            "name": "Tools",
            "description": "Tool definitions offered to the model.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tickassist.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
