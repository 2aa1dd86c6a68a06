import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import chat, info
from app.logging_config import setup_logging
from app.services.gemini_client import GeminiClient
from app.services.knowledge import get_knowledge_base

load_dotenv()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_REPLY = (
    "I apologize, but I encountered an error processing your request. Please try again "
    "or consult with a healthcare professional if this is urgent."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    kb = get_knowledge_base()  # fail fast on a broken knowledge file
    app.state.gemini_client = GeminiClient() if os.getenv("GEMINI_API_KEY") else None
    logger.info(
        "Health intake API ready: %d symptoms, Gemini %s",
        len(kb.symptoms),
        "configured" if app.state.gemini_client else "not configured",
    )
    try:
        yield
    finally:
        if app.state.gemini_client is not None:
            await app.state.gemini_client.aclose()


app = FastAPI(title="Health Intake API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(info.router)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "Endpoint not found",
                "message": "The requested endpoint does not exist.",
            },
        )
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "response": ERROR_REPLY,
        },
    )
