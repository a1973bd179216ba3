import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    # Logging
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    APP_LOG_FILENAME = os.getenv("APP_LOG_FILENAME", "trekking_api.log")
    TRACE_LOG_FILENAME = os.getenv("TRACE_LOG_FILENAME", "search_trace.log")
    TRACE_LOG_PATH = os.path.join(LOG_DIR, TRACE_LOG_FILENAME)

    # HTTP Application
    SERVICE_HOST = os.getenv("SERVICE_HOST", "127.0.0.1")
    APP_PORT = int(os.getenv("APP_PORT", os.getenv("PORT", "3000")))
    API_PREFIX = os.getenv("API_PREFIX", "/api/v1")
    CORS_ORIGINS = _as_list(os.getenv("CORS_ORIGINS", "*"))
    HTTP_USER_AGENT = os.getenv("HTTP_USER_AGENT", "trekking-chile-api/1.0")

    # Search defaults
    DEFAULT_RADIUS_KM = float(os.getenv("DEFAULT_RADIUS_KM", "50"))
    DEFAULT_LIMIT = int(os.getenv("DEFAULT_LIMIT", "20"))

    # Chile bounding box
    CHILE_MIN_LAT = float(os.getenv("CHILE_MIN_LAT", "-56.0"))
    CHILE_MAX_LAT = float(os.getenv("CHILE_MAX_LAT", "-17.5"))
    CHILE_MIN_LON = float(os.getenv("CHILE_MIN_LON", "-75.6"))
    CHILE_MAX_LON = float(os.getenv("CHILE_MAX_LON", "-66.4"))

    # Overpass
    OVERPASS_API_URL = os.getenv(
        "OVERPASS_API_URL", "https://overpass-api.de/api/interpreter"
    )
    OVERPASS_TIMEOUT = int(os.getenv("OVERPASS_TIMEOUT", "30"))
    OVERPASS_MAX_SERVER_TIMEOUT = 25
    OVERPASS_MAX_RETRIES = int(os.getenv("OVERPASS_MAX_RETRIES", "2"))
    OVERPASS_RETRY_DELAY = float(os.getenv("OVERPASS_RETRY_DELAY", "1.0"))
    OVERPASS_MAX_ELEMENTS = int(os.getenv("OVERPASS_MAX_ELEMENTS", "1000"))

    # Geocoding
    NOMINATIM_ENABLED = _as_bool(os.getenv("NOMINATIM_ENABLED", "true"))
    NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", HTTP_USER_AGENT)
    NOMINATIM_DOMAIN = os.getenv("NOMINATIM_DOMAIN", "nominatim.openstreetmap.org")
    GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
    GEOCODING_TIMEOUT = int(os.getenv("GEOCODING_TIMEOUT", "10"))
    GEOCODING_CANDIDATES = int(os.getenv("GEOCODING_CANDIDATES", "5"))

    # Gemini
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_FALLBACK_MODELS = _as_list(
        os.getenv(
            "GEMINI_FALLBACK_MODELS",
            "gemini-2.5-flash,gemini-2.5-pro,gemini-2.5-flash-lite,"
            "gemini-3-flash-preview,gemini-3-pro-preview",
        )
    )
    PARSER_TEMPERATURE = float(os.getenv("PARSER_TEMPERATURE", "0.3"))
    SUMMARY_TEMPERATURE = float(os.getenv("SUMMARY_TEMPERATURE", "0.7"))
    SUMMARY_MAX_TOKENS = int(os.getenv("SUMMARY_MAX_TOKENS", "200"))
    # 0 turns thinking off so the token cap is spent on the answer
    SUMMARY_THINKING_BUDGET = int(os.getenv("SUMMARY_THINKING_BUDGET", "0"))
    SUMMARY_MAX_PLACES = int(os.getenv("SUMMARY_MAX_PLACES", "10"))

    @property
    def chile_bounds(self) -> tuple[float, float, float, float]:
        """(min_lat, min_lon, max_lat, max_lon), the order Overpass expects."""
        return (
            self.CHILE_MIN_LAT,
            self.CHILE_MIN_LON,
            self.CHILE_MAX_LAT,
            self.CHILE_MAX_LON,
        )

    def in_chile(self, lat: float, lon: float) -> bool:
        return (
            self.CHILE_MIN_LAT <= lat <= self.CHILE_MAX_LAT
            and self.CHILE_MIN_LON <= lon <= self.CHILE_MAX_LON
        )


settings = Settings()
