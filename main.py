from fastapi import FastAPI
from contextlib import asynccontextmanager
from database.db import init_db
from routes.operator import router as operator_router
from routes.user import router as user_router
from routes.queues import router as queues_router
import sys, logging
from utils.global_settings import settings, setup_logging

setup_logging()
logger = logging.getLogger(__name__)

required_settings = ['secret_key', 'database_url']

def check_env():
    """
    Validate configuration.

    Exits the process if a required setting is empty or not set, the service
    cannot verify tokens or persist tickets without them.
    """
    for name in required_settings:
        if not getattr(settings, name):
            logger.error(f"{name.upper()} is empty or not set")
            sys.exit(1)
        else:
            logger.debug(f"Environment variable validation completed: {name.upper()}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    check_env()
    init_db()
    yield

# Creating instance of the FastAPI app
description = """
* Virtual "skip the line" queues: users take tickets, operators call the next one
"""
app = FastAPI(lifespan=lifespan,
    title="Skipline Queue Service",
    description=description,
    version="0.1.0",
)
app.include_router(queues_router)
app.include_router(user_router)
app.include_router(operator_router)
