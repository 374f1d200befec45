import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_list(val: str | None, default: list[str]) -> list[str]:
    if not val:
        return default
    return [item.strip() for item in val.split(",") if item.strip()]


class Settings:
    def __init__(self) -> None:
        # Geocoding provider
        self.GEOCODER_PROVIDER: str = os.getenv("GEOCODER_PROVIDER", "nominatim").lower()
        self.GEOCODER_RESULT_LIMIT: int = int(os.getenv("GEOCODER_RESULT_LIMIT", "5"))
        self.GEOCODER_TIMEOUT: float = float(os.getenv("GEOCODER_TIMEOUT", "10"))
        self.KAKAO_BASE_URL: str = os.getenv("KAKAO_BASE_URL", "https://dapi.kakao.com")
        self.KAKAO_REST_API_KEY: str = os.getenv("KAKAO_REST_API_KEY", "")

        # Search box behaviour
        self.SEARCH_DEBOUNCE_MS: int = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))

        # Map camera
        self.MAP_TARGET_ZOOM: int = int(os.getenv("MAP_TARGET_ZOOM", "14"))
        self.MAP_FLY_DURATION_MS: int = int(os.getenv("MAP_FLY_DURATION_MS", "2000"))
        self.MAP_DEFAULT_LAT: float = float(os.getenv("MAP_DEFAULT_LAT", "37.8"))  # San Francisco
        self.MAP_DEFAULT_LON: float = float(os.getenv("MAP_DEFAULT_LON", "-122.4"))
        self.MAP_DEFAULT_ZOOM: int = int(os.getenv("MAP_DEFAULT_ZOOM", "14"))
        self.MAP_TILE_URL_TEMPLATE: str = os.getenv(
            "MAP_TILE_URL_TEMPLATE", "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
        )
        self.MAP_TILE_ATTRIBUTION: str = os.getenv(
            "MAP_TILE_ATTRIBUTION",
            '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
        )

        # Chat proxy
        self.GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
        self.CHAT_MODEL: str = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")
        self.CHAT_BASE_URL: str = os.getenv("CHAT_BASE_URL", "https://api.groq.com/openai/v1")

        # Server
        self.CORS_ALLOW_ORIGINS: list[str] = _as_list(os.getenv("CORS_ALLOW_ORIGINS"), ["*"])
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.MAP_SESSION_ENABLED: bool = _as_bool(os.getenv("MAP_SESSION_ENABLED"), True)

    @property
    def search_debounce_seconds(self) -> float:
        return self.SEARCH_DEBOUNCE_MS / 1000.0


settings = Settings()
