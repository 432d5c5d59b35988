from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

import models  # noqa: F401  테이블 등록
from database import Base, SessionLocal, engine, settings
from api import business, catalog, rooms, sales
from services.bootstrap_service import bootstrap_ledger

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 테이블 생성 후 미러 저장소 + 로컬 스냅샷에서 원장 복원
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        bootstrap_ledger(db, settings.local_state_path)
    finally:
        db.close()
    yield
    logger.info("Karaoke ledger shutting down")


app = FastAPI(
    title="Karaoke Ledger API",
    description="Room usage and settlement ledger for a karaoke business",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rooms.router)
app.include_router(business.router)
app.include_router(catalog.router)
app.include_router(sales.router)


@app.get("/")
def root():
    return {"message": "Karaoke Ledger API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
