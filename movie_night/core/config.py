# movie_night/core/config.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "movie_night_bot"
    env: str = Field(default="local")
    host: str = "0.0.0.0"
    port: int = 8080
    version: str = "0.1.0"

    mongo_dsn: str = Field(
        default="mongodb://mongo:27017/movie_night?replicaSet=rs0",
        alias="MONGO_DSN"
    )
    mongo_db: str = "movie_night"

    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")
    sentry_test_enabled: bool = Field(default=False,
                                      alias="SENTRY_TEST_ENABLED")

    # собственная идентичность бота: его реакции и сообщения игнорируются
    bot_user_id: str = Field(default="0", alias="BOT_USER_ID")
    bot_user_name: str = "Movie Night"

    # стартовые значения, дальше живут в BotState и меняются командами
    default_prefix: str = "!"
    movie_limit_per_user: int = 10
    movie_vote_limit: int = 5

    tmdb_api_key: str = Field(default="", alias="TMDB_API_KEY")
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_language: str = "en-US"
    tmdb_timeout: float = 10.0
    tmdb_movie_url: str = "https://www.themoviedb.org/movie/"
    tmdb_poster_url: str = "https://image.tmdb.org/t/p/w500"
    watch_link_template: str = "https://www.themoviedb.org/movie/{tmdb_id}/watch"

    chat_gateway_url: str = Field(default="http://chat-gateway:8090",
                                  alias="CHAT_GATEWAY_URL")
    chat_gateway_token: str = Field(default="", alias="CHAT_GATEWAY_TOKEN")
    chat_gateway_timeout: float = 5.0

    autosave_interval_s: int = 300
    confirmation_timeout_s: int = 30

    # Pydantic v2: модель конфигурации
    model_config = SettingsConfigDict(env_file="infra/.env", extra="ignore")


settings = Settings()
