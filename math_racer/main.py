import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from math_racer.crud import CreateData
from math_racer.db import engine
from math_racer.domain.exceptions import (
    BusinessException,
    NotFoundException,
    ValidationException,
)
from math_racer.load_secrets import log_level
from math_racer.models.schema_models import ErrorSchema
from math_racer.routers import solo

logging.basicConfig(level=log_level)


@asynccontextmanager
async def lifespan(app):
    """Create the tables if they do not exist yet.
    This function is called to start the server.
    """
    await CreateData.create_table(engine)
    try:
        yield
    finally:
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(solo.solo_router)


@app.exception_handler(NotFoundException)
async def not_found_handler(request: Request, exc: NotFoundException):
    return JSONResponse(status_code=404, content=ErrorSchema(message=exc.message).model_dump())


@app.exception_handler(ValidationException)
async def validation_handler(request: Request, exc: ValidationException):
    logging.warning(f"Validation error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=400,
        content=ErrorSchema(message=exc.message, details=exc.errors).model_dump(),
    )


@app.exception_handler(BusinessException)
async def business_handler(request: Request, exc: BusinessException):
    logging.warning(f"Rejected request on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=400, content=ErrorSchema(message=exc.message).model_dump())


# if __name__ == "__main__":
#     uvicorn.run(app, host="0.0.0.0", port=8080, reload=True)
