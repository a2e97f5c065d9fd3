from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.config import Config


class ProbeRequest(BaseModel):
    """
    Parameters of a single probe cycle, built from the query of one HTTP request.
    """

    model_config = ConfigDict(frozen=True)

    target: str = Field(min_length=1)
    period: timedelta = timedelta(seconds=Config.DEFAULT_PERIOD_SECONDS)
    streaming_seconds: int = Field(default=Config.DEFAULT_STREAMING_SECONDS, ge=1)

    @field_validator("period")
    @classmethod
    def _default_zero_period(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("period must not be negative")
        if value == timedelta(0):
            return timedelta(seconds=Config.DEFAULT_PERIOD_SECONDS)
        return value

    @property
    def deadline_seconds(self) -> float:
        """
        Wall-clock bound for the whole cycle: the sampling window plus ``period``
        for player startup, name resolution and the echo round trip.
        """
        return self.streaming_seconds + self.period.total_seconds()
