from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.logging import configure_logging
from app.api.v1 import api_v1
from app.core.celery_app import celery_app  # noqa: F401  (binds shared tasks to the configured broker)

configure_logging()

app = FastAPI(title=settings.PROJECT_NAME)

# front-end whitelist from env (comma separated), e.g.
# BACKEND_CORS_ORIGINS=http://localhost:5173,https://admin.example.ge
origins = [o.strip() for o in settings.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    )


app.include_router(api_v1, prefix=settings.API_PREFIX)

# root probe (docker health check / smoke tests)
@app.get("/")
def root():
    return {
        "app": settings.PROJECT_NAME,
        "env": settings.ENVIRONMENT,
        "ok": True
    }
