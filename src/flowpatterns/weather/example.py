"""
Weather Activity Planner Example

Fetches the forecast for a city and streams activity suggestions. When rain
is likely, indoor and outdoor plans are made concurrently and merged.

Run with:
  PROVIDER=ollama PLANNING_MODEL=qwen2.5:7b python -m flowpatterns.weather.example Paris
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from dotenv import load_dotenv

from ..core import (
    AgentRegistry,
    HttpxJSONFetcher,
    LLMClientAgent,
    Settings,
    WorkflowError,
    create_llm_client,
    get_logger,
    load_settings,
)
from .prompts import PLANNING_INSTRUCTIONS, SYNTHESIZE_INSTRUCTIONS
from .workflow import (
    PLANNING_AGENT,
    SYNTHESIZE_AGENT,
    create_forecast_workflow,
    create_weather_workflow,
)


def create_agents(settings: Settings) -> AgentRegistry:
    """Register the planning and synthesize agents for the configured provider."""
    extra = {"base_url": settings.ollama_base_url} if settings.provider == "ollama" else {}
    planner = create_llm_client(settings.provider, settings.planning_model, **extra)
    synthesizer = create_llm_client(
        settings.provider, settings.synthesize_model or settings.planning_model, **extra
    )
    return AgentRegistry([
        LLMClientAgent(PLANNING_AGENT, planner, instructions=PLANNING_INSTRUCTIONS),
        LLMClientAgent(SYNTHESIZE_AGENT, synthesizer, instructions=SYNTHESIZE_INSTRUCTIONS),
    ])


def _echo(chunk: str) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


async def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Plan activities around the weather")
    parser.add_argument("city", help="The city to get the weather for")
    parser.add_argument(
        "--single-day",
        action="store_true",
        help="Skip the rain branch and only plan from the forecast",
    )
    args = parser.parse_args(argv)

    load_dotenv()
    settings = load_settings()
    logger = get_logger("flowpatterns", settings.log_level)

    agents = create_agents(settings)
    async with HttpxJSONFetcher(timeout=settings.http_timeout) as fetcher:
        factory = create_forecast_workflow if args.single_day else create_weather_workflow
        workflow = factory(fetcher, agents, settings, on_chunk=_echo)
        logger.debug("\n" + workflow.visualize())

        print("\n" + "=" * 70)
        print(f"WEATHER ACTIVITY PLANNER: {args.city}")
        print("=" * 70 + "\n")

        try:
            result = await workflow.run({"city": args.city}, step_timeout=settings.step_timeout)
        except WorkflowError as e:
            print(f"\nError: {e}")
            return 1

    print("\n\n" + "=" * 70)
    print("FINAL RESULT")
    print("=" * 70)
    print(result["activities"])
    print("\nMetrics:")
    print(json.dumps(workflow.get_metrics(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
