import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dinheiros.config import settings
from dinheiros.errors import DinheirosError
from dinheiros.models_sqlalchemy import init_db
from dinheiros.routers import (
    auth,
    accounts,
    transactions,
    categories,
    shares,
    imports,
)
from dinheiros.utils.logger import logger

app = FastAPI(title="Dinheiros API", version="1.0.0")

origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)


# Request logging middleware with request ID
@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = uuid.uuid4().hex[:8]
    request.state.rid = rid
    logger.info(f"→ {request.method} {request.url.path} rid={rid}")
    try:
        resp = await call_next(request)
        logger.info(f"← {request.url.path} status={resp.status_code} rid={rid}")
        resp.headers["X-Request-ID"] = rid
        return resp
    except Exception as e:
        logging.exception("Unhandled error rid=%s: %s", rid, str(e))
        error_resp = JSONResponse(
            {"error": "internal_error", "rid": rid, "message": str(e), "type": type(e).__name__},
            status_code=500,
        )
        error_resp.headers["X-Request-ID"] = rid
        return error_resp


@app.exception_handler(DinheirosError)
async def dinheiros_error_handler(request: Request, exc: DinheirosError):
    rid = getattr(request.state, "rid", "unknown")
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path} rid={rid}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.url.path} rid={rid}: {exc.message}")
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


app.include_router(auth.router)
app.include_router(accounts.router)
app.include_router(transactions.router)
app.include_router(categories.router)
app.include_router(shares.router)
app.include_router(imports.router)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting Dinheiros API (database: {settings.database_url})")
    if settings.database_url.startswith("sqlite"):
        init_db()
        logger.info("SQLite schema ensured")


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


def run():
    import uvicorn

    uvicorn.run("dinheiros.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)


if __name__ == "__main__":
    run()
