"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tconvert import __version__
from tconvert.api.routes import router
from tconvert.config import CORS_ORIGINS, logger as config_logger
from tconvert.conversion.scratch import ensure_scratch_dir

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scratch = ensure_scratch_dir()
    config_logger.info("Converter API started (scratch dir %s)", scratch)
    yield
    config_logger.info("Converter API shutting down")


app = FastAPI(
    title="File Converter API",
    description="Convert images, audio, video and documents between common formats.",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from tconvert.config import HOST, PORT
    uvicorn.run("tconvert.main:app", host=HOST, port=PORT, reload=True)
