"""Prompt templates and agent instructions for the weather activity planner."""

PLANNING_INSTRUCTIONS = """You are a local activities and travel expert who excels at weather-based planning.
Analyze the weather data and provide practical activity recommendations.
For each suggestion, mention why it suits the forecast and keep it concise."""

SYNTHESIZE_INSTRUCTIONS = """You are given two lists of activities for the same day: one for
outdoor plans and one for indoor plans. Combine them into a single plan that
works whatever the weather turns out to be."""

PLAN_ACTIVITIES_PROMPT = """Based on the following weather forecast for {location}, suggest appropriate activities:
{forecast_json}
"""

PLAN_INDOOR_ACTIVITIES_PROMPT = """In case it rains, plan indoor activities for {location} on {date}"""

SYNTHESIZE_PROMPT = """Indoor activities:
{indoor}

Outdoor activities:
{outdoor}

There is a chance of rain so be prepared to do indoor activities if needed."""
