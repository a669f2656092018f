from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_QUERIES = ["health", "status", "abci_info", "net_info", "genesis"]


def split_csv(value) -> list[str]:
    """Split a comma-separated string (or list of them) into stripped, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    items = []
    for chunk in value:
        items.extend(part.strip() for part in str(chunk).split(","))
    return [item for item in items if item]


class DetectorConfig(BaseModel):
    """Resolved run configuration. Validated once, immutable afterwards."""

    model_config = ConfigDict(frozen=True)

    endpoints: list[str] = Field(min_length=1)
    queries: list[str] = Field(default_factory=lambda: list(DEFAULT_QUERIES), min_length=1)
    duration_s: float = Field(default=60.0, gt=0)
    concurrency: int = Field(default=10, ge=1)
    timeout_s: float = Field(default=5.0, gt=0)
    pause_s: float = Field(default=0.1, ge=0)
    output: str | None = None

    @field_validator("endpoints", "queries", mode="before")
    @classmethod
    def _split(cls, v):
        return split_csv(v)

    @field_validator("endpoints")
    @classmethod
    def _check_endpoints(cls, v: list[str]) -> list[str]:
        for endpoint in v:
            parsed = urlparse(endpoint)
            if not parsed.scheme or not parsed.netloc:
                raise ValueError(f"endpoint must include scheme and host: {endpoint!r}")
        return v
