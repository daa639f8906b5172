"""Application settings loaded from the environment (prefix ``GRADEKEYS_``)."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    The domain layer never reads these; ``gradekeys.wiring.bootstrap``
    passes them into engines and use cases.
    """

    model_config = SettingsConfigDict(
        env_prefix="GRADEKEYS_",
        env_file=".env",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./gradekeys.db"

    # Logging
    log_level: str = "INFO"

    # Grading defaults
    default_rounding_type: str = "nearest"
    default_rounding_decimal_places: int = 1
    # "lowest" keeps the fail-safe to the worst grade for scores no
    # boundary contains; "highest" gives above-the-top scores the best one.
    out_of_range_policy: str = "lowest"


settings = Settings()
