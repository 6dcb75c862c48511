"""
Weather Activity Planner: forecast-driven planning with a rain branch

A workflow that:
  1. Fetches a city's forecast from Open-Meteo
  2. If rain is likely, plans outdoor and indoor activities concurrently and
     synthesizes them into one plan
  3. Otherwise plans activities straight from the forecast

Agents are streaming text generators looked up in an ``AgentRegistry`` when
the workflow is built.
"""

from .conditions import WEATHER_CONDITIONS, get_weather_condition
from .schemas import Activities, CityInput, Forecast, ForecastInput, SynthesisInput
from .steps import (
    FETCH_WEATHER,
    PLAN_ACTIVITIES,
    PLAN_INDOOR_ACTIVITIES,
    SYNTHESIZE,
    WeatherLookupError,
    create_fetch_weather_step,
    create_plan_activities_step,
    create_plan_indoor_activities_step,
    create_synthesize_step,
    resolve_forecast,
    summarize_forecast,
)
from .workflow import (
    PLANNING_AGENT,
    SYNTHESIZE_AGENT,
    WeatherSteps,
    create_forecast_workflow,
    create_plan_both_workflow,
    create_weather_steps,
    create_weather_workflow,
    rain_expected_above,
)

__all__ = [
    # Workflows
    "create_weather_workflow",
    "create_forecast_workflow",
    "create_plan_both_workflow",
    "create_weather_steps",
    "rain_expected_above",
    "WeatherSteps",
    # Steps
    "create_fetch_weather_step",
    "create_plan_activities_step",
    "create_plan_indoor_activities_step",
    "create_synthesize_step",
    "resolve_forecast",
    "summarize_forecast",
    "WeatherLookupError",
    "FETCH_WEATHER",
    "PLAN_ACTIVITIES",
    "PLAN_INDOOR_ACTIVITIES",
    "SYNTHESIZE",
    "PLANNING_AGENT",
    "SYNTHESIZE_AGENT",
    # Schemas
    "CityInput",
    "Forecast",
    "ForecastInput",
    "Activities",
    "SynthesisInput",
    "WEATHER_CONDITIONS",
    "get_weather_condition",
]
