from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_secret_key: str = "change-me-in-production"

    # Logging
    log_level: str = "info"

    # CORS
    cors_origins: str = "http://localhost:8081"

    # Deployment mode: "container" (default) or "lambda"
    deployment_mode: str = "container"

    # Profile store: "sqlite" (default) or "memory"
    profile_store_backend: str = "sqlite"
    database_path: str = "./data/commitly.db"

    # Auth session persistence
    secure_storage_path: str = "./data/auth.session"

    # Appwrite (account + welcome function)
    appwrite_endpoint: str = ""
    appwrite_project_id: str = ""
    welcome_function_url: str = ""

    # GitHub
    github_token: str = ""
    github_graphql_url: str = "https://api.github.com/graphql"
    streak_api_url: str = "https://api.franznkemaka.com/github-streak/stats"

    # Push notifications
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    expo_access_token: str = ""
    device_push_token: str = ""

    # Gamification
    commit_points: int = 25

    # Outbound HTTP
    http_timeout_seconds: float = 10.0

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
