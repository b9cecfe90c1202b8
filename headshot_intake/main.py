import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from minio.error import S3Error
from starlette.exceptions import HTTPException as StarletteHTTPException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from headshot_intake.core.config import settings
from headshot_intake.core.database import init_models
from headshot_intake.core.dependencies import get_object_store
from headshot_intake.core.errors import IntakeError
from headshot_intake.routers import images, root

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    try:
        get_object_store().ensure_bucket()
    except (S3Error, Urllib3HTTPError) as err:
        logger.error("MinIO error: %s", err)
    yield


def envelope(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return envelope(exc.status_code, message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return envelope(400, "Validation error", errors=jsonable_errors(exc))


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]


async def intake_error_handler(request: Request, exc: IntakeError):
    logger.error("%s while handling %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return envelope(exc.status_code, str(exc) or "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntakeError, intake_error_handler)


app = FastAPI(title="Headshot Intake Backend", lifespan=lifespan)

app.include_router(root.router, tags=["health-check"])
app.include_router(images.router, prefix="/images", tags=["images"])
register_exception_handlers(app)


if __name__ == "__main__":
    uvicorn.run("headshot_intake.main:app", host="0.0.0.0", port=8000, reload=True)
