"""
Routing decision parsing.

The routing model is asked for a compact ``{"route", "query"}`` JSON object.
parse_routing_decision accepts only strict JSON matching that schema;
heuristic_route is the deterministic fallback used when it does not.
"""

from __future__ import annotations

import json

from collections.abc import Sequence

from pydantic import ValidationError

from api.middleware.exception_handlers import RoutingClassificationMalformedError
from models.agent_models import RoutingDecision


def parse_routing_decision(text: str | None) -> RoutingDecision:
    """Parse model output into a RoutingDecision.

    Raises:
        RoutingClassificationMalformedError: Output is not JSON, not an object,
            or does not validate against the routing schema
    """
    if not text or not text.strip():
        raise RoutingClassificationMalformedError("empty output", raw_output=text)

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise RoutingClassificationMalformedError(f"invalid JSON ({e.msg})", raw_output=text) from e

    if not isinstance(payload, dict):
        raise RoutingClassificationMalformedError("expected a JSON object", raw_output=text)

    try:
        return RoutingDecision.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
        raise RoutingClassificationMalformedError(f"schema mismatch ({fields})", raw_output=text) from e


def heuristic_route(text: str, vector_store_ids: Sequence[str] | None) -> RoutingDecision:
    """Route to rag when stores were supplied, otherwise direct; query is the input unchanged."""
    return RoutingDecision(route="rag" if vector_store_ids else "direct", query=text)


__all__ = ["heuristic_route", "parse_routing_decision"]
