"""Simulated tool backends for the agent test harness.

No tool here reaches the network. Results have a fixed layout but are filled
with random values, so callers should check structure, not numbers.
"""

from __future__ import annotations

import json
import logging
import random
import re
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

CONDITIONS = ("Sunny", "Partly Cloudy", "Cloudy", "Rainy", "Snowy")
DEFAULT_LOCATION = "the requested location"

_WEATHER_WORDS = ("weather", "temperature", "forecast")
_LOCATION_RE = re.compile(
    r"(?:weather|temperature|forecast)(?:\s+in|\s+for|\s+at)?\s+([a-z\s,]+)",
    re.IGNORECASE,
)


def decode_arguments(arguments_json: str | None) -> dict[str, Any]:
    """Leniently decode a tool call's JSON arguments; bad input gives ``{}``."""
    try:
        decoded = json.loads(arguments_json or "")
    except (TypeError, ValueError, RecursionError):
        logger.warning("Could not decode tool arguments: %r", arguments_json)
        return {}
    if not isinstance(decoded, dict):
        return {}
    return decoded


def extract_location(query: str) -> str:
    match = _LOCATION_RE.search(query)
    if match:
        location = match.group(1).strip(" \t\n,")
        if location:
            return location
    return DEFAULT_LOCATION


def _is_weather_query(query: str) -> bool:
    lowered = query.lower()
    return any(word in lowered for word in _WEATHER_WORDS)


def _weather_report(query: str, rng) -> str:
    location = extract_location(query)
    temperature = rng.randint(40, 69)
    humidity = rng.randint(30, 79)
    wind_speed = rng.randint(5, 24)
    conditions = rng.choice(CONDITIONS)
    as_of = datetime.now().strftime("%I:%M:%S %p")

    forecast = [
        ("Today", conditions, 0, -10),
        ("Tomorrow", rng.choice(CONDITIONS), 2, -8),
        ("Day 3", rng.choice(CONDITIONS), -5, -15),
        ("Day 4", rng.choice(CONDITIONS), 4, -6),
        ("Day 5", rng.choice(CONDITIONS), 1, -9),
    ]
    forecast_lines = "\n".join(
        f"- {day}: {cond}, High {temperature + high}°F, Low {temperature + low}°F"
        for day, cond, high, low in forecast
    )

    return (
        f'Weather search results for "{location}":\n\n'
        f"Current Weather for {location} (as of {as_of}):\n"
        f"- Temperature: {temperature}°F\n"
        f"- Conditions: {conditions}\n"
        f"- Humidity: {humidity}%\n"
        f"- Wind Speed: {wind_speed} mph\n\n"
        f"5-Day Forecast for {location}:\n"
        f"{forecast_lines}\n\n"
        "Source: Simulated Weather Data (for demonstration purposes)"
    )


def _search_results(query: str) -> str:
    return (
        f'Search results for "{query}":\n\n'
        f"1. {query} - Wikipedia\n"
        f"   Summary: Information about {query} from the free encyclopedia...\n\n"
        f"2. Latest news on {query} - News Source\n"
        f"   Summary: Recent developments related to {query}...\n\n"
        f"3. Understanding {query} - Educational Resource\n"
        f"   Summary: Comprehensive guide to understanding {query}...\n\n"
        "Source: Simulated Search Results (for demonstration purposes)"
    )


def _file_search_results(query: str) -> str:
    return (
        f'File search results for "{query}":\n\n'
        "1. document1.pdf - Relevance: High\n"
        f"   Context: ...information related to {query}...\n\n"
        "2. presentation.pptx - Relevance: Medium\n"
        f"   Context: ...mentions {query} in the context of...\n\n"
        "3. notes.txt - Relevance: Medium\n"
        f"   Context: ...discussion about {query} and related topics...\n\n"
        "Source: Simulated File Search (for demonstration purposes)"
    )


def _query_of(args: dict[str, Any]) -> str:
    query = args.get("query")
    if query is None:
        return ""
    return query if isinstance(query, str) else json.dumps(query)


def execute(tool_name: str, arguments_json: str | None, rng=None) -> str:
    """Run a simulated tool and return its textual result. Never raises.

    ``rng`` may be a ``random.Random`` to make the filled-in values
    reproducible; the module-level generator is used otherwise.
    """
    rng = rng or random
    args = decode_arguments(arguments_json)

    if tool_name == "web_search":
        query = _query_of(args)
        if _is_weather_query(query):
            return _weather_report(query, rng)
        return _search_results(query)

    if tool_name == "file_search":
        return _file_search_results(_query_of(args))

    return f"Tool {tool_name} was called with arguments: {arguments_json}"
