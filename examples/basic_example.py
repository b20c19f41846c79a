"""
Basic Cortexlite Example
========================

This example demonstrates the core features of Cortexlite:
- Plain text generation against a Cortex model
- Structured output from a model without native schema support
- Schema cleaning for Cortex's JSON schema dialect
- Bringing your own text-generation function

To run this example:
    uv run python examples/basic_example.py

Note: Requires SNOWFLAKE_API_KEY and SNOWFLAKE_ACCOUNT_ID (or a .env file).
"""

import asyncio
import json

from pydantic import BaseModel, Field

from cortexlite import Cortexlite, clean_schema, generate_object

# ============================================================================
# Structured Output Models
# ============================================================================


class Sentiment(BaseModel):
    """Sentiment analysis result."""

    sentiment: str = Field(description="positive, negative, or neutral")
    confidence: float = Field(ge=0, le=1, description="Confidence score 0-1")
    keywords: list[str] = Field(description="Key words that indicate sentiment")
    note: str | None = None


# ============================================================================
# Main Examples
# ============================================================================


async def text_example():
    """Simple text generation."""
    print("\n" + "=" * 60)
    print("1. Text Generation")
    print("=" * 60)

    client = Cortexlite(default_model="cortex/claude-sonnet-4-5")

    result = await client.generate_text("What is the capital of France?")
    print("Q: What is the capital of France?")
    print(f"A: {result.text}")
    print(f"Tokens used: {result.usage.total_tokens if result.usage else 'N/A'}")


async def structured_output_example():
    """Prompt-engineered structured output on Llama."""
    print("\n" + "=" * 60)
    print("2. Structured Output (JSON fallback)")
    print("=" * 60)

    client = Cortexlite(default_model="cortex/llama3.1-70b")

    result = await client.generate_object(
        Sentiment,
        "Sentiment",
        "Analyze the sentiment: 'I absolutely love this product! Best purchase ever!'",
        on_warning=lambda message: print(f"Warning: {message}"),
    )

    sentiment: Sentiment = result.object
    print(f"Sentiment: {sentiment.sentiment}")
    print(f"Confidence: {sentiment.confidence:.2%}")
    print(f"Keywords: {', '.join(sentiment.keywords)}")


def schema_cleaning_example():
    """What the schema looks like after cleaning."""
    print("\n" + "=" * 60)
    print("3. Schema Cleaning")
    print("=" * 60)

    schema = {
        "type": "object",
        "properties": {
            "email": {"type": "string", "format": "email", "maxLength": 100},
            "age": {"anyOf": [{"type": "integer", "minimum": 0}, {"type": "null"}]},
        },
    }
    print(json.dumps(clean_schema(schema), indent=2))


async def custom_generator_example():
    """generate_object() with any text-generation function."""
    print("\n" + "=" * 60)
    print("4. Custom Text Generator")
    print("=" * 60)

    async def canned_generate_text(*, messages, max_tokens=None):
        return {"text": 'Sure! {"name": "John", "age": 30}'}

    result = await generate_object(
        canned_generate_text,
        schema={"type": "object", "properties": {"name": {"type": "string"}}},
        object_name="Person",
        messages=[{"role": "user", "content": "Generate a person"}],
    )
    print(result.to_dict())


async def main():
    """Run all examples."""
    print("=" * 60)
    print("Cortexlite Basic Examples")
    print("=" * 60)

    schema_cleaning_example()
    await custom_generator_example()
    await text_example()
    await structured_output_example()

    print("\n" + "=" * 60)
    print("All examples completed!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
