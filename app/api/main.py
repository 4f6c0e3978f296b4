"""FastAPI application exposing the public JSON API."""

from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.logger import configure_logging

from .routes import automations, clients, estimates, invoices, jobs, leads


load_dotenv()
configure_logging()

app = FastAPI(
    title=os.getenv("API_TITLE", "Contractor CRM API"),
    version=os.getenv("API_VERSION", "1.0.0"),
    description=(
        "JSON API for the contractor CRM. Record changes raise automation events. "
        "Authenticate using a Supabase JWT in the Authorization header."
    ),
)


def _configure_cors(api_app: FastAPI) -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "").strip()
    if not raw_origins:
        return

    origins: List[str] = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    if not origins:
        return

    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_configure_cors(app)


@app.get("/health", tags=["health"])  # pragma: no cover - trivial fast check
def healthcheck() -> dict[str, str]:
    """Simple health endpoint for load balancers and smoke tests."""

    return {"status": "ok"}


app.include_router(automations.router, prefix="/v1", tags=["automations"])
app.include_router(clients.router, prefix="/v1", tags=["clients"])
app.include_router(estimates.router, prefix="/v1", tags=["estimates"])
app.include_router(invoices.router, prefix="/v1", tags=["invoices"])
app.include_router(jobs.router, prefix="/v1", tags=["jobs"])
app.include_router(leads.router, prefix="/v1", tags=["leads"])
