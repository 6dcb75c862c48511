"""WMO weather interpretation codes used by Open-Meteo."""

WEATHER_CONDITIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    95: "Thunderstorm",
}


def get_weather_condition(code: int) -> str:
    """Describe a weather code; unmapped codes are "Unknown"."""
    return WEATHER_CONDITIONS.get(code, "Unknown")
