from collections.abc import Sequence

import certifi
from beanie import Document, init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from beanie_paginate.core.config import Settings, get_settings


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true)."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def client_kwargs(uri: str) -> dict:
    kwargs = {}
    if _use_tls(uri):
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsDisableOCSPEndpointCheck"] = True
    return kwargs


def get_database(settings: Settings | None = None) -> AsyncIOMotorDatabase:
    settings = settings or get_settings()
    client = AsyncIOMotorClient(settings.mongodb_uri, **client_kwargs(settings.mongodb_uri))
    return client[settings.mongodb_db_name]


async def init_db(document_models: Sequence[type[Document]], settings: Settings | None = None) -> AsyncIOMotorDatabase:
    """Connect and register Beanie models; returns the database for raw ``MotorSource`` use."""
    database = get_database(settings)
    await init_beanie(database=database, document_models=list(document_models))
    return database
