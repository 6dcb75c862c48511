"""Contracts for the weather activity planner."""

from pydantic import BaseModel, ConfigDict, Field


class CityInput(BaseModel):
    """Trigger payload of the weather workflows."""

    city: str = Field(min_length=1, description="The city to get the weather for")


class Forecast(BaseModel):
    """Daily forecast summary for one location."""

    date: str
    max_temp: float
    min_temp: float
    precipitation_chance: float = Field(ge=0, le=100)
    condition: str
    location: str


class ForecastInput(BaseModel):
    """Input of the planning steps and trigger of the plan-both workflow."""

    forecast: Forecast


class Activities(BaseModel):
    """Suggested activities as free text."""

    activities: str


class SynthesisInput(BaseModel):
    """Results of both planners, keyed by their step ids."""

    model_config = ConfigDict(populate_by_name=True)

    outdoor: Activities = Field(alias="plan-activities")
    indoor: Activities = Field(alias="plan-indoor-activities")
