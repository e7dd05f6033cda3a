"""Photofeed Service - FastAPI server for the social photo feed."""

import os
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.auth.database import init_db
from src.shared.auth.routes import router as auth_router
from src.shared.social.routes import router as social_router
from src.shared.social.storage import LOCAL_URL_PREFIX, default_upload_dir

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

app = FastAPI(
    title="Photofeed Service",
    description="Posts, likes, comments, follows and profiles for the photo feed",
    version="0.1.0"
)


# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    init_db()
    logging.info("Database initialization completed on startup")


# /api/users/me must be registered before /api/users/{user_id}
app.include_router(auth_router)
app.include_router(social_router)

# Serve locally stored post images; the Supabase backend hands out its own URLs
if os.environ.get("STORAGE_BACKEND", "local").lower() == "local":
    _upload_dir = default_upload_dir()
    _upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(LOCAL_URL_PREFIX, StaticFiles(directory=str(_upload_dir)), name="post-images")

# CORS configuration - must be added before exception handlers
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


def cors_headers(request: Request) -> dict:
    """CORS headers for error responses, which bypass CORSMiddleware on 500s."""
    headers = {}
    origin = request.headers.get("origin")
    if origin in CORS_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Access-Control-Allow-Methods"] = "*"
        headers["Access-Control-Allow-Headers"] = "*"
    return headers


def error_content(detail) -> dict:
    """Normalise an exception detail into {"error": ..., "details"?: ...}."""
    if isinstance(detail, dict) and "error" in detail:
        return detail
    if isinstance(detail, str):
        return {"error": detail}
    return {"error": str(detail)}


# Global exception handlers to ensure every error uses the same JSON envelope
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render FastAPI HTTP exceptions as error envelopes."""
    headers = cors_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.detail),
        headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render routing errors (404/405) as error envelopes."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.detail),
        headers=cors_headers(request)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed fields are a 400 with the offending fields listed."""
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": "; ".join(problems)},
        headers=cors_headers(request)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Last resort: log the traceback and answer 500."""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)},
        headers=cors_headers(request)
    )


@app.get("/")
async def root():
    return {"message": "Photofeed Service API is running", "status": "ok"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
