"""Response envelope rendering for the CLI."""

from __future__ import annotations

from typing import Any

from crudforge.domain.response import Response


def format_response(response: Response[Any]) -> str:
    """The JSON envelope: succeeded, data, message, code, errors."""
    return response.model_dump_json(indent=2)
