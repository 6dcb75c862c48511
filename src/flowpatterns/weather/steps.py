"""
Weather activity planner steps

Factories that bind collaborators (JSON fetcher, agents) into ``Step``
definitions. Agents are passed in already resolved, so steps never look
anything up by name while running.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from ..core.abstractions import IAgent, IJSONFetcher
from ..core.config import Settings
from ..workflows import ExecutionContextView, Step
from .conditions import get_weather_condition
from .prompts import (
    PLAN_ACTIVITIES_PROMPT,
    PLAN_INDOOR_ACTIVITIES_PROMPT,
    SYNTHESIZE_PROMPT,
)
from .schemas import Activities, CityInput, Forecast, ForecastInput, SynthesisInput

logger = logging.getLogger(__name__)

FETCH_WEATHER = "fetch-weather"
PLAN_ACTIVITIES = "plan-activities"
PLAN_INDOOR_ACTIVITIES = "plan-indoor-activities"
SYNTHESIZE = "synthesize"

ChunkSink = Callable[[str], None]


class WeatherLookupError(Exception):
    """Raised when the weather service has no usable data for a city."""


def resolve_forecast(data: ForecastInput, context: ExecutionContextView) -> Forecast:
    """
    Forecast a planning step should use.

    A ``fetch-weather`` result recorded in the current run always wins over
    the forecast carried in the step input.
    """
    recorded = context.get_result(FETCH_WEATHER)
    if recorded is not None:
        return Forecast.model_validate(recorded)
    return data.forecast


def summarize_forecast(
    location: str,
    payload: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Forecast:
    """
    Reduce an Open-Meteo forecast response to a daily summary.

    Raises:
        WeatherLookupError: If the hourly series are missing or empty
    """
    hourly = payload.get("hourly") or {}
    temperatures: List[float] = hourly.get("temperature_2m") or []
    precipitation: List[float] = [
        p for p in (hourly.get("precipitation_probability") or []) if p is not None
    ]
    temperatures = [t for t in temperatures if t is not None]
    if not temperatures:
        raise WeatherLookupError(f"No hourly forecast available for '{location}'")

    current = payload.get("current") or {}
    return Forecast(
        date=(now or datetime.now(timezone.utc)).isoformat(),
        max_temp=max(temperatures),
        min_temp=min(temperatures),
        precipitation_chance=max(precipitation, default=0),
        condition=get_weather_condition(current.get("weathercode", -1)),
        location=location,
    )


def create_fetch_weather_step(
    fetcher: IJSONFetcher,
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Step:
    """
    Geocode the trigger city, then fetch and summarize its forecast.

    Args:
        fetcher: JSON fetcher used for both Open-Meteo calls
        settings: Service URLs (defaults to ``Settings()``)
        clock: Returns the forecast date (defaults to UTC now)
    """
    settings = settings or Settings()

    async def fetch_weather(data: CityInput, context: ExecutionContextView) -> Forecast:
        geocoding = await fetcher.fetch(
            settings.geocoding_url, params={"name": data.city, "count": 1}
        )
        results = (geocoding or {}).get("results") or []
        if not results:
            raise WeatherLookupError(f"Location '{data.city}' not found")

        place = results[0]
        logger.info(
            f"[{FETCH_WEATHER}] {data.city} -> {place['name']} "
            f"({place['latitude']}, {place['longitude']})"
        )
        payload = await fetcher.fetch(
            settings.forecast_url,
            params={
                "latitude": place["latitude"],
                "longitude": place["longitude"],
                "current": "precipitation,weathercode",
                "timezone": "auto",
                "hourly": "precipitation_probability,temperature_2m",
            },
        )
        return summarize_forecast(place["name"], payload or {}, now=clock() if clock else None)

    return Step(
        id=FETCH_WEATHER,
        description="Fetches weather forecast for a given city",
        input_schema=CityInput,
        output_schema=Forecast,
        execute=fetch_weather,
    )


def create_plan_activities_step(agent: IAgent, on_chunk: Optional[ChunkSink] = None) -> Step:
    """
    Suggest activities for the forecast.

    Args:
        agent: Planning agent
        on_chunk: Receives reply chunks as they stream (e.g. stdout)
    """

    async def plan_activities(data: ForecastInput, context: ExecutionContextView) -> Activities:
        forecast = resolve_forecast(data, context)
        prompt = PLAN_ACTIVITIES_PROMPT.format(
            location=forecast.location,
            forecast_json=json.dumps(forecast.model_dump(), indent=2),
        )
        stream = agent.stream_text([{"role": "user", "content": prompt}])
        return Activities(activities=await stream.collect(on_chunk=on_chunk))

    return Step(
        id=PLAN_ACTIVITIES,
        description="Suggests activities based on weather conditions",
        input_schema=ForecastInput,
        output_schema=Activities,
        execute=plan_activities,
    )


def create_plan_indoor_activities_step(agent: IAgent) -> Step:
    """Suggest indoor alternatives in case it rains."""

    async def plan_indoor_activities(data: ForecastInput, context: ExecutionContextView) -> Activities:
        forecast = resolve_forecast(data, context)
        prompt = PLAN_INDOOR_ACTIVITIES_PROMPT.format(
            location=forecast.location, date=forecast.date
        )
        stream = agent.stream_text([{"role": "user", "content": prompt}])
        return Activities(activities=await stream.collect())

    return Step(
        id=PLAN_INDOOR_ACTIVITIES,
        description="Suggests indoor activities based on weather conditions",
        input_schema=ForecastInput,
        output_schema=Activities,
        execute=plan_indoor_activities,
    )


def create_synthesize_step(agent: IAgent, on_chunk: Optional[ChunkSink] = None) -> Step:
    """Merge the outdoor and indoor plans into one."""

    async def synthesize(data: SynthesisInput, context: ExecutionContextView) -> Activities:
        prompt = SYNTHESIZE_PROMPT.format(
            indoor=data.indoor.activities,
            outdoor=data.outdoor.activities,
        )
        stream = agent.stream_text([{"role": "user", "content": prompt}])
        return Activities(activities=await stream.collect(on_chunk=on_chunk))

    return Step(
        id=SYNTHESIZE,
        description="Synthesizes the results of the indoor and outdoor activities",
        input_schema=SynthesisInput,
        output_schema=Activities,
        execute=synthesize,
    )
