#!/usr/bin/env python3
"""Basic usage example for Paramind.

Demonstrates the two halves of the library:
1. Fan a problem out to several reasoning strategies and vote
2. Score a suggestion before applying it, then record the outcome

Uses the configured model when OPENAI_API_KEY is set, otherwise a canned
offline executor.

Run: uv run python examples/basic_usage.py
"""

from __future__ import annotations

import asyncio
import os

from paramind.models.executor import AIExecutor, ExecutionResult, LLMExecutor
from paramind.models.llm_client import LLMClient
from paramind.models.pattern_store import SQLitePatternStore
from paramind.tools.confidence_engine import ConfidenceScoringEngine
from paramind.tools.orchestrator import ReasoningOrchestrator
from paramind.utils.events import EventBus, SessionEvent


class OfflineExecutor:
    """Answers every strategy with a fixed structured reply."""

    async def execute(self, prompt: str, cancel: asyncio.Event) -> ExecutionResult:
        await asyncio.sleep(0.05)
        if "unconventional" in prompt:
            return ExecutionResult(
                "Approach: question the setup\nSolution: 30 apples remain\nConfidence: 55", 40
            )
        return ExecutionResult(
            "Approach: step by step\n"
            "Reasoning:\n1. 25% of 120 is 30, leaving 90\n2. A third of 90 is 30\n"
            "Solution: 60 apples remain\nConfidence: 85",
            60,
        )


def make_executor() -> AIExecutor:
    """Use the real model when a key is configured."""
    if os.getenv("OPENAI_API_KEY"):
        return LLMExecutor(LLMClient())
    print("Note: OPENAI_API_KEY not set, using offline executor")
    return OfflineExecutor()


def on_event(event: SessionEvent) -> None:
    print(f"    event: {event.kind.value} ({event.state})")


async def main() -> None:
    """Run the reasoning and confidence workflow."""
    print("=" * 60)
    print("Paramind Basic Usage Example")
    print("=" * 60)

    bus = EventBus()
    bus.subscribe(on_event)
    orchestrator = ReasoningOrchestrator(make_executor(), events=bus)

    # 1. Parallel reasoning
    print("\n[1] Starting reasoning session...")
    session = await orchestrator.start_session(
        "A store has 120 apples. They sell 25% on Monday and 1/3 of the remainder "
        "on Tuesday. How many apples are left?",
        ["analytical", "first_principles", "lateral_thinking"],
    )
    print(f"    Session: {session.id}")

    session = await orchestrator.wait_for_session(session.id, timeout=120)
    for path in session.paths:
        print(f"    {path.strategy_id}: {path.solution!r} (confidence {path.confidence})")
    print(f"    Final: {session.final_solution}")
    if session.voting_result:
        print(f"    Aggregate confidence: {session.voting_result.aggregate_confidence:.1f}")

    # 2. Confidence scoring
    print("\n[2] Scoring suggestions...")
    with SQLitePatternStore(":memory:") as store:
        store.add_pattern(
            "docs", r"readme|documentation", description="Documentation edits", success_rate=0.9
        )
        engine = ConfidenceScoringEngine(store)

        for text in (
            "Update the README with the new install steps",
            "Drop the users table and run the migration in production",
        ):
            analysis = engine.analyze_text(text, current_files=["README.md"])
            print(f"    {text}")
            print(f"      score={analysis.score:.2f} level={analysis.level} risk={analysis.risk_level}")
            if analysis.recommendations:
                print(f"      {analysis.recommendations[0]}")

        # 3. Feedback
        print("\n[3] Recording outcome...")
        updated = engine.record_outcome("Update the README with the new install steps", "success")
        print(f"    Updated patterns: {updated}")

    await orchestrator.shutdown()
    print("\n" + "=" * 60)
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
