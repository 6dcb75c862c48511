"""
Weather activity planner workflows

  weather-workflow:
    fetch-weather
      -> if precipitation chance > threshold:
             plan-both-workflow (plan-activities || plan-indoor-activities -> synthesize)
         else:
             plan-activities

  weather-forecast-workflow:
    fetch-weather -> plan-activities
"""

from dataclasses import dataclass
from typing import Optional

from ..core.abstractions import IJSONFetcher
from ..core.agents import AgentRegistry
from ..core.config import Settings
from ..workflows import ExecutionContextView, FieldRef, ResultMapping, Step, Workflow
from .schemas import Activities, CityInput, ForecastInput
from .steps import (
    FETCH_WEATHER,
    ChunkSink,
    create_fetch_weather_step,
    create_plan_activities_step,
    create_plan_indoor_activities_step,
    create_synthesize_step,
)

PLANNING_AGENT = "planningAgent"
SYNTHESIZE_AGENT = "synthesizeAgent"


@dataclass(frozen=True)
class WeatherSteps:
    """The planner's steps, shared between the parent and embedded workflows."""

    fetch_weather: Step
    plan_activities: Step
    plan_indoor_activities: Step
    synthesize: Step


def create_weather_steps(
    fetcher: IJSONFetcher,
    agents: AgentRegistry,
    settings: Optional[Settings] = None,
    on_chunk: Optional[ChunkSink] = None,
) -> WeatherSteps:
    """
    Build the planner steps, resolving agents up front.

    Raises:
        UnknownAgentError: If ``planningAgent`` or ``synthesizeAgent`` is missing
    """
    planner = agents.get(PLANNING_AGENT)
    synthesizer = agents.get(SYNTHESIZE_AGENT)
    return WeatherSteps(
        fetch_weather=create_fetch_weather_step(fetcher, settings),
        plan_activities=create_plan_activities_step(planner, on_chunk=on_chunk),
        plan_indoor_activities=create_plan_indoor_activities_step(planner),
        synthesize=create_synthesize_step(synthesizer, on_chunk=on_chunk),
    )


def rain_expected_above(threshold: float):
    """Predicate: the recorded forecast's precipitation chance exceeds ``threshold``."""

    def rain_expected(context: ExecutionContextView) -> bool:
        forecast = context.get_result(FETCH_WEATHER) or {}
        return forecast.get("precipitation_chance", 0) > threshold

    return rain_expected


def create_plan_both_workflow(steps: WeatherSteps) -> Workflow:
    """Plan outdoor and indoor activities concurrently, then synthesize."""
    return (
        Workflow(
            name="plan-both-workflow",
            trigger_schema=ForecastInput,
            result=ResultMapping(
                schema=Activities,
                mapping={"activities": FieldRef(steps.synthesize, "activities")},
            ),
        )
        .parallel([steps.plan_activities, steps.plan_indoor_activities])
        .after([steps.plan_activities, steps.plan_indoor_activities])
        .step(steps.synthesize)
        .commit()
    )


def create_weather_workflow(
    fetcher: IJSONFetcher,
    agents: AgentRegistry,
    settings: Optional[Settings] = None,
    on_chunk: Optional[ChunkSink] = None,
) -> Workflow:
    """
    Fetch the forecast, then plan for rain or shine.

    Args:
        fetcher: JSON fetcher for the weather service
        agents: Registry holding ``planningAgent`` and ``synthesizeAgent``
        settings: Service URLs and rain threshold
        on_chunk: Receives streamed agent output
    """
    settings = settings or Settings()
    steps = create_weather_steps(fetcher, agents, settings, on_chunk)
    plan_both = create_plan_both_workflow(steps)
    forecast = {"forecast": FieldRef(steps.fetch_weather)}

    return (
        Workflow(name="weather-workflow", trigger_schema=CityInput)
        .step(steps.fetch_weather)
        .if_(rain_expected_above(settings.rain_threshold))
        .then(plan_both, variables=forecast)
        .else_()
        .then(steps.plan_activities, variables=forecast)
        .commit()
    )


def create_forecast_workflow(
    fetcher: IJSONFetcher,
    agents: AgentRegistry,
    settings: Optional[Settings] = None,
    on_chunk: Optional[ChunkSink] = None,
) -> Workflow:
    """Single-day plan: fetch the forecast, then suggest activities."""
    steps = create_weather_steps(fetcher, agents, settings, on_chunk)
    return (
        Workflow(
            name="weather-forecast-workflow",
            trigger_schema=CityInput,
            result=ResultMapping(
                schema=Activities,
                mapping={"activities": FieldRef(steps.plan_activities, "activities")},
            ),
        )
        .step(steps.fetch_weather)
        .step(steps.plan_activities, variables={"forecast": FieldRef(steps.fetch_weather)})
        .commit()
    )
