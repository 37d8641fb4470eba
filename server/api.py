"""FastAPI server exposing the AI proxy and auxiliary endpoints."""

import os
from datetime import datetime, timezone
from typing import Any

from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agents.ai_proxy import AIProxy, ProxyError, TaskValidationError
from wardrobe_app.config import WardrobeConfig
from wardrobe_app.logging_config import configure_logging, correlation_context

configure_logging()

NO_STORE = {"Cache-Control": "no-store"}

config = WardrobeConfig.from_env()
app = FastAPI(title="Wardrobe Studio", version=config.app_version)
app.state.config = config
app.state.proxy = AIProxy.from_config(config)


def get_config(request: Request) -> WardrobeConfig:
    return request.app.state.config


def get_proxy(request: Request) -> AIProxy:
    return request.app.state.proxy


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@app.middleware("http")
async def correlation_middleware(request: Request, call_next):
    """Scope a correlation id per request, honouring ``X-Request-ID``."""

    with correlation_context(request.headers.get("X-Request-ID")) as correlation_id:
        response = await call_next(request)
    response.headers["X-Request-ID"] = correlation_id
    return response


@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def body_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Unparseable bodies get the same error shape as task validation failures."""

    return JSONResponse(status_code=400, content={"error": "Request body must be valid JSON"})


@app.post("/api/gemini")
def run_ai_task(payload: Any = Body(...), proxy: AIProxy = Depends(get_proxy)) -> dict:
    """Forward one task-tagged request (vision, mixExplain, stylist, noteSummarize)."""

    if not isinstance(payload, dict):
        raise TaskValidationError("Request body must be a JSON object")
    return proxy.handle(payload)


@app.get("/api/health")
async def healthcheck(response: Response) -> dict:
    """Liveness probe."""

    response.headers["Cache-Control"] = "no-store"
    return {"ok": True, "time": _utc_now()}


@app.get("/api/models")
def list_models(response: Response, proxy: AIProxy = Depends(get_proxy)):
    """Models visible to the server-side key, with their generation methods."""

    try:
        models = proxy.list_models()
    except ProxyError as exc:
        return JSONResponse(status_code=500, content={"ok": False, "error": exc.message}, headers=NO_STORE)
    response.headers["Cache-Control"] = "no-store"
    return {"ok": True, "count": len(models), "models": [model.public_dict() for model in models]}


@app.get("/api/version")
async def version(response: Response, config: WardrobeConfig = Depends(get_config)) -> dict:
    """Static build metadata plus the server clock."""

    response.headers["Cache-Control"] = "no-store"
    return {
        "appVersion": config.app_version,
        "environment": config.environment or "unknown",
        "branch": config.git_branch or "unknown",
        "commit": config.git_commit or "unknown",
        "deploymentId": config.deployment_id or "unknown",
        "serverTime": _utc_now(),
    }


def get_app() -> FastAPI:
    """Expose the FastAPI instance for ASGI servers."""

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:app", host="0.0.0.0", port=int(os.getenv("PORT", "8080")), reload=False)
