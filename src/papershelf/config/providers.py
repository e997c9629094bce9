"""Metadata provider configuration records.

Each provider entry is one of a closed set of option records, selected by its
``kind``. Entries are validated when the settings file is loaded, so the
registry never sees an untyped parameter bag.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_TIMEOUT_SECONDS = 20.0
DOI_ENDPOINT = "https://doi.org/{doi}"
ARXIV_ENDPOINT = "https://export.arxiv.org/api/query"
DBLP_ENDPOINT = "https://dblp.org"


class _ProviderOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    enabled: bool = True
    priority: int = 0
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)
    # header name -> environment variable holding its value (API keys)
    header_env: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("kind"):
            return {**data, "name": data["kind"]}
        return data


class DoiProviderConfig(_ProviderOptions):
    kind: Literal["doi"] = "doi"
    name: str = "doi"
    endpoint: str = DOI_ENDPOINT


class ArxivProviderConfig(_ProviderOptions):
    kind: Literal["arxiv"] = "arxiv"
    name: str = "arxiv"
    endpoint: str = ARXIV_ENDPOINT


class DblpProviderConfig(_ProviderOptions):
    kind: Literal["dblp"] = "dblp"
    name: str = "dblp"
    endpoint: str = DBLP_ENDPOINT
    year_offsets: tuple[int, ...] = (0, 1)
    max_hits: int = Field(default=10, ge=1)


class CustomProviderConfig(_ProviderOptions):
    """User-defined JSON endpoint.

    ``url_template`` may use ``{title}``, ``{doi}``, ``{arxiv}`` and ``{year}``;
    ``fields`` maps record fields (``title``, ``venue``, ``year``, ``authors``,
    ``doi``) to dotted paths into the JSON response.
    """

    kind: Literal["custom"] = "custom"
    name: str = "custom"
    url_template: str
    fields: dict[str, str] = Field(default_factory=dict)
    preprint_only: bool = False


AnyProviderConfig = (
    DoiProviderConfig | ArxivProviderConfig | DblpProviderConfig | CustomProviderConfig
)
ProviderConfig = Annotated[AnyProviderConfig, Field(discriminator="kind")]

PROVIDER_KINDS: frozenset[str] = frozenset({"doi", "arxiv", "dblp", "custom"})


def default_provider_configs() -> list[AnyProviderConfig]:
    return [
        DoiProviderConfig(priority=9),
        ArxivProviderConfig(priority=8),
        DblpProviderConfig(priority=7),
    ]
