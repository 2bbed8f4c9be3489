"""
FastAPI dependencies for the outbound collaborators, plus the shared JSON
body reader.

Clients are created once in the application lifespan and kept on app.state;
tests replace these functions through app.dependency_overrides.
"""
from fastapi import Request
from typing import Any

from .clients.dropp_client import DroppClient
from .clients.mirror_node import MirrorNodeClient
from .clients.record_store import TransactionRecordClient
from .exceptions import ValidationError


def get_record_client(request: Request) -> TransactionRecordClient:
    return request.app.state.record_client


def get_dropp_client(request: Request) -> DroppClient:
    return request.app.state.dropp_client


def get_mirror_client(request: Request) -> MirrorNodeClient:
    return request.app.state.mirror_client


async def read_json_body(request: Request) -> Any:
    """
    Parse a JSON request body.

    Raises:
        ValidationError: body is not JSON or is nested too deeply
    """
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e
    except RecursionError as e:
        raise ValidationError("Request body is nested too deeply") from e
