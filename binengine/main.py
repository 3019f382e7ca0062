from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from binengine.api.deps import close_clients
from binengine.api.routers.pools import router as pools_router
from binengine.api.routers.positions import router as positions_router


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    await close_clients()


app = FastAPI(title="DLMM Bin Engine API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pools_router)
app.include_router(positions_router)
