import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import settings
from core.database import create_db_and_tables
from core.exceptions import AppException, app_exception_handler
from routes.auth import router as auth_router
from routes.contacts import router as contacts_router
from routes.phone_validation import router as phone_validation_router
from routes.subscription import router as subscription_router
from routes.webhooks import router as webhooks_router
from services.scheduler import start_background_sweeps, stop_background_sweeps

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# =========================================
# 🏁 Lifespan (DB initialization + sweeps)
# =========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("✅ Database tables created on startup.")

    tasks = start_background_sweeps() if settings.ENABLE_SCHEDULER else []
    yield

    await stop_background_sweeps(tasks)
    logger.info("✅ Application shutting down.")


# =========================================
#  ✅ FastAPI App
# =========================================
app = FastAPI(lifespan=lifespan, title="LeadVault Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)


# =========================================
# 📦 Routers
# =========================================
app.include_router(auth_router, prefix="/api/auth")
app.include_router(contacts_router, prefix="/api/contacts")
app.include_router(phone_validation_router, prefix="/api/phone-validation")
app.include_router(subscription_router, prefix="/api/subscription")
app.include_router(webhooks_router, prefix="/webhooks")


# Serve validation reports at /static
os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.UPLOADS_DIR), name="static")


# =========================================
# 🩺 Health Check
# =========================================
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "Backend is running"}


@app.get("/")
def read_root():
    return {"message": "Welcome to LeadVault Backend!"}
