from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

DEFAULT_DB_PASSWORD = "payments_password"
DEFAULT_RABBITMQ_PASSWORD = "payments_password"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "payments-app"
    app_env: str = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_log_level: str = "INFO"

    # Database (PostgreSQL)
    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "payments"
    db_username: str = "payments_user"
    db_password: str = DEFAULT_DB_PASSWORD
    db_probe_table: str = "test"

    # Redis (key/value store and cache store)
    redis_url: str = "redis://localhost:6379/0"
    cache_redis_url: str = "redis://localhost:6379/1"
    cache_prefix: str = "payments_cache:"
    cache_ttl: int | None = None  # seconds, None keeps entries forever

    # RabbitMQ
    rabbitmq_host: str = "payments-rabbitmq"
    rabbitmq_port: int = 5672
    rabbitmq_user: str = "payments_user"
    rabbitmq_password: str = DEFAULT_RABBITMQ_PASSWORD
    rabbitmq_vhost: str = "/"
    rabbitmq_test_queue: str = "test_queue"
    rabbitmq_connect_timeout: float = 5.0
    rabbitmq_consume_timeout: float = 2.0

    # Kafka
    kafka_brokers: str = "kafka:29092"
    kafka_test_topic: str = "payments-test-topic"
    kafka_test_group_id: str = "payments-test-consumer-group"
    kafka_test_key: str = "payments-test-key"
    kafka_security_protocol: str = "PLAINTEXT"
    kafka_sasl_mechanisms: str = "PLAIN"
    kafka_sasl_username: str | None = None
    kafka_sasl_password: str | None = None
    kafka_flush_timeout: float = 10.0
    kafka_consume_timeout: float = 15.0
    kafka_poll_timeout: float = 2.0
    kafka_max_messages: int = 5

    # Upstream microservice
    microservice_url: str = "http://auth.shipanything.test"
    microservice_timeout: float = 10.0

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the async engine (credentials escaped)."""
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        ).render_as_string(hide_password=False)

    @model_validator(mode="after")
    def validate_production_secrets(self) -> Settings:
        if self.is_production:
            if self.db_password == DEFAULT_DB_PASSWORD:
                raise ValueError("db_password must be changed in production")
            if self.rabbitmq_password == DEFAULT_RABBITMQ_PASSWORD:
                raise ValueError("rabbitmq_password must be changed in production")
        return self


settings = Settings()
