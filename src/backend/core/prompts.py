"""
System prompts and instructions for Agent Relay.
Centralizes prompt text for the routing classifier and the sub-agents.
"""

from __future__ import annotations

from collections.abc import Sequence

# Routing classifier instructions. The model must answer with JSON only;
# anything else is treated as malformed and routed heuristically.
ROUTING_INSTRUCTIONS = (
    "You are a router that decides how to handle user input. "
    "If the user asks to use uploaded files or knowledge base, or if vector store ids are provided, "
    "choose 'rag'. Otherwise choose 'direct'. "
    'Return ONLY a compact JSON object with fields: {"route":"direct"|"rag","query":"..."}. '
    "Do not add explanations."
)

DIRECT_AGENT_INSTRUCTIONS = """You are a helpful assistant. Answer the user's request directly and concisely.
Use the prior turns of the conversation as context when they are relevant."""

RAG_AGENT_INSTRUCTIONS = """You are a helpful assistant with access to a file search tool over the user's documents.
Always search the provided knowledge base before answering and ground your answer in what you find.
If the documents do not contain the answer, say so instead of guessing."""


def build_routing_prompt(text: str, vector_store_ids: Sequence[str] | None = None) -> str:
    """Build the routing classification prompt for a normalized input.

    Args:
        text: Normalized (text or transcribed) user input
        vector_store_ids: Vector stores supplied with the request, if any

    Returns:
        Prompt asking the model for a ``{"route", "query"}`` JSON object
    """
    stores = ", ".join(vector_store_ids) if vector_store_ids else "none"
    return "\n".join(
        [
            ROUTING_INSTRUCTIONS,
            "",
            f"User Input: {text}",
            f"Vector Stores Provided: {stores}",
            "",
            "Output JSON now.",
        ]
    )
