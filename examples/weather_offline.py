"""
Weather planner, offline

Runs both branches of the weather workflow against a canned weather service
and scripted agents, printing the graph, the streamed output and metrics.

Usage:
    python examples/weather_offline.py
"""

import asyncio
import json
from typing import Any, AsyncIterator, List, Mapping, Optional

from flowpatterns.core import AgentRegistry, IAgent, IJSONFetcher, TextStream, get_logger
from flowpatterns.weather import PLANNING_AGENT, SYNTHESIZE_AGENT, create_weather_workflow


class CannedWeather(IJSONFetcher):
    """Open-Meteo shaped responses with a fixed precipitation chance."""

    def __init__(self, precipitation: int):
        self.precipitation = precipitation

    async def fetch(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        if "geocoding" in url:
            return {"results": [{"name": params["name"], "latitude": 48.85, "longitude": 2.35}]}
        return {
            "current": {"weathercode": 61 if self.precipitation > 50 else 1},
            "hourly": {
                "temperature_2m": [11.0, 14.5, 17.2, 13.1],
                "precipitation_probability": [self.precipitation // 2, self.precipitation],
            },
        }


class ScriptedAgent(IAgent):
    """Streams a fixed reply word by word."""

    def __init__(self, name: str, reply: str):
        self._name = name
        self.reply = reply

    @property
    def name(self) -> str:
        return self._name

    def stream_text(self, messages: List[Any]) -> TextStream:
        return TextStream(self._words())

    async def _words(self) -> AsyncIterator[str]:
        for word in self.reply.split(" "):
            await asyncio.sleep(0.01)
            yield word + " "


def echo(chunk: str) -> None:
    print(chunk, end="", flush=True)


async def main():
    get_logger(level="INFO")
    agents = AgentRegistry([
        ScriptedAgent(PLANNING_AGENT, "Morning: walk along the Seine. Afternoon: Louvre."),
        ScriptedAgent(SYNTHESIZE_AGENT, "Start at the Louvre, then cafe hopping if it clears."),
    ])

    for precipitation in (10, 80):
        workflow = create_weather_workflow(CannedWeather(precipitation), agents, on_chunk=echo)
        if precipitation == 10:
            print(workflow.visualize())

        print(f"\n--- precipitation chance {precipitation}% ---")
        result = await workflow.run({"city": "Paris"})
        print("\nResult:", result)
        print(json.dumps(workflow.get_metrics(), indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())
