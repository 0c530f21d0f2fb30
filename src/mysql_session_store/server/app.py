# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .dependencies import initialise_session_store, set_session_store
from .router import router as session_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    session_store = initialise_session_store()
    result = await session_store.create_table()
    if not result.ok:
        logger.error("Session table could not be created: %s", result.error)
    set_session_store(session_store)
    try:
        yield
    finally:
        await session_store.close()


app = FastAPI(
    title="Session Store API",
    description="Maintenance endpoints for the SQL session store",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(session_router)
