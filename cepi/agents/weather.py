"""Weather Agent - OpenWeatherMap forecast for the event location and date.

Geocodes the location, pulls the 5 day / 3 hour forecast and picks the
entry closest to the event time. Without WEATHER_API_KEY it returns a
seasonal estimate scored by the same formulas.
"""

import datetime as dt
import logging
from typing import Any

from cepi.errors import UpstreamError, UpstreamResponseError
from cepi.fallback import WeatherAssessment, WeatherReading
from cepi.formatting import render_weather_report
from cepi.models import AgentKind, AgentReport, EventRequest, RetryAttempt
from cepi.prompts import build_prompt
from cepi.text import truncate_to_word_limit
from cepi.utils.resilience import fetch_with_retry, raise_for_upstream_status

from .base import BaseAgent

logger = logging.getLogger(__name__)

SERVICE = "openweathermap"
LIVE_CONFIDENCE = 85
PLANNING_NOTES_WORDS = 200


def event_timestamp(date_text: str) -> float:
    """Epoch seconds for the event. A bare date means midnight UTC."""
    text = date_text.strip()
    if len(text) > 10:
        try:
            moment = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=dt.timezone.utc)
            return moment.timestamp()
        except ValueError:
            pass
    day = dt.date.fromisoformat(text[:10])
    return dt.datetime.combine(day, dt.time(), tzinfo=dt.timezone.utc).timestamp()


def closest_forecast(entries: list[dict[str, Any]], target: float) -> dict[str, Any]:
    """Forecast entry whose ``dt`` is nearest to ``target``. First wins ties."""
    return min(entries, key=lambda entry: abs(entry.get("dt", 0) - target))


def reading_from_forecast(entry: dict[str, Any]) -> WeatherReading:
    main = entry.get("main") or {}
    weather = (entry.get("weather") or [{}])[0]
    wind = entry.get("wind") or {}
    return WeatherReading(
        temperature=float(main.get("temp", 0)),
        humidity=float(main.get("humidity", 0)),
        wind_speed=float(wind.get("speed", 0)),
        condition=str(weather.get("main") or "Unknown"),
        description=str(weather.get("description") or "no description"),
    )


class WeatherAgent(BaseAgent):
    kind = AgentKind.WEATHER

    async def _analyze(self, event: EventRequest) -> AgentReport:
        if not self._config.is_weather_available():
            logger.info("weather: WEATHER_API_KEY not configured - using seasonal estimate")
            return self.fallback(event, "WEATHER_API_KEY not configured")

        attempts: list[RetryAttempt] = []
        reading = await self._fetch_reading(event, attempts)
        assessment = WeatherAssessment.from_reading(reading)
        notes = await self._planning_notes(event, reading)

        markdown = render_weather_report(event.location, event.date, assessment, planning_notes=notes)
        response = assessment.to_response(
            event.location,
            event.date,
            LIVE_CONFIDENCE,
            {"dataSource": "OpenWeatherMap", "attempts": len(attempts)},
        )
        response.raw_text = markdown
        return AgentReport(self.kind, markdown, response)

    async def _get_json(self, path: str, params: dict, attempts: list[RetryAttempt]) -> Any:
        response = await fetch_with_retry(
            f"{self._config.weather_base_url.rstrip('/')}{path}",
            self._config.weather_max_attempts,
            self._config.weather_timeout_ms,
            service=SERVICE,
            client=self._http_client,
            backoff_base_ms=self._config.backoff_base_ms,
            jitter_ms=self._config.backoff_jitter_ms,
            sleep=self._sleep,
            attempts=attempts,
            params={**params, "appid": self._config.weather_api_key},
        )
        raise_for_upstream_status(response, SERVICE)
        try:
            return response.json()
        except ValueError:
            raise UpstreamResponseError(
                f"{SERVICE} returned a non-JSON body", service=SERVICE, status_code=response.status_code
            ) from None

    async def _fetch_reading(self, event: EventRequest, attempts: list[RetryAttempt]) -> WeatherReading:
        places = await self._get_json("/geo/1.0/direct", {"q": event.location, "limit": 1}, attempts)
        if not isinstance(places, list):
            raise UpstreamResponseError(f"{SERVICE} geocoding returned an unexpected body", service=SERVICE)
        if not places:
            raise UpstreamResponseError(f'Location "{event.location}" not found', service=SERVICE)
        place = places[0]
        if not isinstance(place, dict) or "lat" not in place or "lon" not in place:
            raise UpstreamResponseError(f"{SERVICE} geocoding result has no coordinates", service=SERVICE)

        forecast = await self._get_json(
            "/data/2.5/forecast", {"lat": place["lat"], "lon": place["lon"], "units": "metric"}, attempts
        )
        if not isinstance(forecast, dict):
            raise UpstreamResponseError(f"{SERVICE} forecast returned an unexpected body", service=SERVICE)
        entries = forecast.get("list") or []
        if not isinstance(entries, list):
            raise UpstreamResponseError(f"{SERVICE} forecast list is malformed", service=SERVICE)
        entries = [entry for entry in entries if isinstance(entry, dict)]
        if not entries:
            raise UpstreamResponseError(f"No forecast returned for {event.location}", service=SERVICE)

        target = event_timestamp(event.date)
        try:
            return reading_from_forecast(closest_forecast(entries, target))
        except (TypeError, ValueError, AttributeError, IndexError) as exc:
            raise UpstreamResponseError(f"{SERVICE} forecast entry is malformed: {exc}", service=SERVICE) from None

    async def _planning_notes(self, event: EventRequest, reading: WeatherReading) -> str:
        """Optional LLM commentary on the forecast. Failure only drops the section."""
        if not self.llm_available:
            return ""
        prompt = build_prompt(
            self.kind,
            {"eventDetails": event.to_dict(), "forecast": reading.to_dict(), "wordLimit": PLANNING_NOTES_WORDS},
        )
        try:
            text = await self._generate(prompt)
        except UpstreamError as e:
            logger.warning(f"weather: planning notes skipped: {e}")
            return ""
        return truncate_to_word_limit(text.strip(), PLANNING_NOTES_WORDS)
