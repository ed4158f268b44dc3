"""Conversion core configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# Scratch storage for staged uploads and produced artifacts. Created on first use.
SCRATCH_DIR = Path(os.getenv("SCRATCH_DIR", "/tmp/tconvert"))

# Limits (env)
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
IMAGE_TIMEOUT_SECONDS = float(os.getenv("IMAGE_TIMEOUT_SECONDS", "30"))
# Shared by the ffmpeg and LibreOffice backends
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "120"))
MAX_IMAGE_DIMENSION = int(os.getenv("MAX_IMAGE_DIMENSION", "1080"))
DEFAULT_QUALITY = int(os.getenv("DEFAULT_QUALITY", "90"))

# Fixed encoder parameters
GIF_MAX_DURATION_SECONDS = 10
GIF_FPS = 10
GIF_WIDTH = 480
MP3_BITRATE = "192k"
MP3_SAMPLE_RATE = 44100
MP3_CHANNELS = 2
MP4_VIDEO_CODEC = "libx264"
MP4_PRESET = "fast"
MP4_CRF = 23
MP4_AUDIO_CODEC = "aac"
PDF_JPEG_QUALITY = 95
# A4 at 72 dpi, in PDF points
PDF_PAGE_SIZE = (595, 842)

# Backends
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
LIBREOFFICE_BINARY = os.getenv("LIBREOFFICE_BINARY", "").strip() or None

# Concurrency (image transforms run on a thread pool)
MAX_WORKERS = int(os.getenv("MAX_WORKERS", str(min(32, (os.cpu_count() or 4) + 4))))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tconvert")
