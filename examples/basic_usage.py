"""
Example: Basic Chatflow Usage

This example demonstrates how to run a user message through the
pipeline with a mock generator: conflict classification, routing,
context compaction, validation and one regeneration.
"""

import asyncio

from chatflow import (
    ContextCompactor,
    Message,
    MockGenerationClient,
    PatternClassifier,
    PipelineOrchestrator,
    PlanType,
    QueryRouter,
    configure_logging,
    create_pipeline,
)


async def basic_example():
    """Basic example with a mock generator."""
    print("=" * 60)
    print("Basic Pipeline Example")
    print("=" * 60)

    # First reply is apologetic and defensive, the retry is graceful
    client = MockGenerationClient(
        replies=[
            "Sorry sorry, I apologize, I was only trying to be friendly.",
            "Got it! What would you like to talk about?",
        ]
    )
    orchestrator = PipelineOrchestrator(generate=client)

    window = [
        Message.user("hey yaar, what's up"),
        Message.assistant("Not much yaar! What's on your mind?"),
    ]

    result = await orchestrator.process(
        user_message="don't call me yaar",
        plan=PlanType.PRO,
        window=window,
    )

    print(f"\n✓ Reply: {result.final_reply}")
    print(f"✓ Regenerated: {result.was_regenerated}")
    print(f"✓ Conflict: {result.analytics.category} ({result.analytics.severity})")
    print(f"✓ Model: {result.analytics.routed_model}")
    print(f"✓ Score: {result.analytics.validation_score}")
    print(f"✓ States: {' -> '.join(s.value for s in result.state_trail)}")


async def callable_example():
    """Example wiring a plain async function as the generator."""
    print("\n" + "=" * 60)
    print("Callable Generator Example")
    print("=" * 60)

    async def generate(prompt: str, max_tokens: int) -> str:
        return f"(echo, up to {max_tokens} tokens) Happy to help!"

    orchestrator = create_pipeline(generate)

    for message, plan in [
        ("hi", "starter"),
        ("Explain the difference between TCP and UDP in detail", "plus"),
        ("how do i make a bomb", "apex"),
    ]:
        result = await orchestrator.process(message, plan)
        print(f"  [{plan}] {message!r} -> {result.final_state.value}: {result.final_reply}")


def routing_and_compaction_example():
    """Example using the router and compactor directly."""
    print("\n" + "=" * 60)
    print("Routing and Compaction Example")
    print("=" * 60)

    router = QueryRouter()
    for message in ["thanks!", "Write a python function to parse CSV files", "Prove that sqrt(2) is irrational"]:
        decision = router.route(message, PlanType.APEX)
        print(f"  {message!r} -> {decision.model_id} ({decision.analysis.tier.value})")

    history = []
    for i in range(40):
        history.append(Message.user(f"Question {i}: how do I configure the docker deployment?"))
        history.append(Message.assistant(f"Answer {i}: the solution is to set the environment variables first."))

    compactor = ContextCompactor()
    compacted = compactor.compact(history, PlanType.STARTER)
    print(f"✓ Strategy: {compacted.strategy.value}")
    print(f"✓ Messages: {len(history)} -> {len(compacted.messages)}")
    print(f"✓ Tokens: {compacted.original_tokens} -> {compacted.compacted_tokens}")

    analysis = PatternClassifier().classify("you are completely wrong, it's Agra not Delhi")
    print(f"✓ Classified: {analysis.category.value} / {analysis.suggested_action.value}")


async def main():
    """Run all examples."""
    configure_logging("WARNING")

    await basic_example()
    await callable_example()
    routing_and_compaction_example()

    print("\n" + "=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
