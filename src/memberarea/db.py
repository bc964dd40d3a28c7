# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from pymongo import MongoClient
from pymongo.database import Database

from memberarea.config import Settings


def get_mongo_client(settings: Settings) -> MongoClient:
    uri = settings.mongodb_uri
    if not uri:
        raise RuntimeError("MONGODB_HOST is not configured")
    # connects lazily, on first operation
    return MongoClient(uri)


def get_database(settings: Settings, client: MongoClient | None = None) -> Database:
    if client is None:
        client = get_mongo_client(settings)
    return client[settings.mongodb_database]
