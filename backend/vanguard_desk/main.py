import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vanguard_desk.core.config import settings
from vanguard_desk.core.database import init_db
from vanguard_desk.api import contact, threads


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on debug setting
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    init_db()

    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Thread routes first: "/threads" must not be captured by "/{contact_id}"
app.include_router(threads.router, prefix="/api/contact", tags=["threads"])
app.include_router(contact.router, prefix="/api/contact", tags=["contact"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
