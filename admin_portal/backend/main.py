from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .database import db
from .routers import storage, placements


app = FastAPI(
    title="Singularity Storage Admin API",
    description="Read-only view of Singularity Storage records, world save state and terminal placements",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup():
    await db.connect()

@app.on_event("shutdown")
async def shutdown():
    await db.disconnect()

@app.get("/")
async def root():
    return {
        "status": "online",
        "service": "Singularity Storage Admin API",
        "version": "1.0.0",
        "database": "connected" if db.is_connected else "disconnected",
        "read_only": True,
    }

app.include_router(storage.router)
app.include_router(placements.router)
