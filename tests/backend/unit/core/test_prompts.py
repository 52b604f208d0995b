"""Tests for prompt builders."""

from __future__ import annotations

from core.prompts import ROUTING_INSTRUCTIONS, build_routing_prompt


def test_routing_prompt_without_stores() -> None:
    prompt = build_routing_prompt("What is the capital of France?")

    assert prompt.startswith(ROUTING_INSTRUCTIONS)
    assert "User Input: What is the capital of France?" in prompt
    assert "Vector Stores Provided: none" in prompt
    assert prompt.endswith("Output JSON now.")


def test_routing_prompt_lists_stores() -> None:
    prompt = build_routing_prompt("Summarize the handbook", ["vs_1", "vs_2"])

    assert "Vector Stores Provided: vs_1, vs_2" in prompt


def test_routing_instructions_demand_json() -> None:
    assert '{"route":"direct"|"rag","query":"..."}' in ROUTING_INSTRUCTIONS
