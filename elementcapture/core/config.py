from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    HOST: str = "127.0.0.1"
    PORT: int = 8001

    MAX_HTML_LENGTH: int = 200_000
    MAX_CAPTURE_DIMENSION: int = 4096
    CAPTURE_TIMEOUT_SECONDS: float = 10.0
    IMAGE_WAIT_SECONDS: float = 5.0
    FETCH_TIMEOUT_SECONDS: float = 15.0

    LAYOUT_ENGINE_WASM_PATH: str | None = None

    FALLBACK_FONT_FAMILY: str = "Inter"
    FALLBACK_FONT_URL: str | None = "https://cdn.jsdelivr.net/fontsource/fonts/inter@latest/latin-400-normal.ttf"
    FALLBACK_FONT_PATH: str | None = None

    RESULT_STORE: str = "memory"
    RESULT_STORE_PATH: str = "./data/last_result.json"
    DOWNLOAD_DIR: str = "./data/downloads"

    RASTERIZER: str = "playwright"


settings = Settings()
