"""Ingestor configuration.

Settings come from environment variables (``KUBERNETES_INGESTOR_*``, nested
keys separated by ``__``), an optional ``.env`` file, or a YAML document
loaded with :func:`load_settings`.
"""

import functools
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ANNOTATION_PREFIX = "terasky.backstage.io"

PUBLISH_TARGET_GITHUB = "github"
PUBLISH_TARGET_GITLAB = "gitlab"
PUBLISH_TARGET_BITBUCKET = "bitbucket"
PUBLISH_TARGET_BITBUCKET_CLOUD = "bitbucketcloud"
PUBLISH_TARGET_YAML = "yaml"

PUBLISH_TARGETS = (
    PUBLISH_TARGET_GITHUB,
    PUBLISH_TARGET_GITLAB,
    PUBLISH_TARGET_BITBUCKET,
    PUBLISH_TARGET_BITBUCKET_CLOUD,
    PUBLISH_TARGET_YAML,
)


class ClusterSettings(BaseModel):
    """A cluster declared explicitly instead of read from kubeconfig."""

    name: str
    url: str
    auth_provider: str = "serviceAccount"
    service_account_token: Optional[str] = None
    skip_tls_verify: bool = False
    ca_data: Optional[str] = None


class PublishPhaseSettings(BaseModel):
    target: Optional[str] = None
    allowed_targets: Optional[List[str]] = None
    allow_repo_selection: bool = False
    repo_url: Optional[str] = None
    target_branch: Optional[str] = None

    @field_validator("target")
    @classmethod
    def _normalize_target(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.lower()
        if v not in PUBLISH_TARGETS:
            raise ValueError(
                f"publish target must be one of {', '.join(PUBLISH_TARGETS)}, got '{v}'"
            )
        return v

    @property
    def is_file_only(self) -> bool:
        return self.target == PUBLISH_TARGET_YAML


class GenericCRDSettings(BaseModel):
    crd_names: List[str] = Field(default_factory=list)
    crd_label_selector: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.crd_names or self.crd_label_selector)


class IngestorSettings(BaseSettings):
    annotation_prefix: str = DEFAULT_ANNOTATION_PREFIX
    allowed_cluster_names: Optional[List[str]] = None
    clusters: List[ClusterSettings] = Field(default_factory=list)

    crossplane_enabled: bool = True
    xrds_enabled: bool = True
    ingest_all_xrds: bool = False
    convert_default_values_to_placeholders: bool = False

    xrd_publish: PublishPhaseSettings = Field(default_factory=PublishPhaseSettings)
    crd_publish: PublishPhaseSettings = Field(default_factory=PublishPhaseSettings)
    generic_crds: GenericCRDSettings = Field(default_factory=GenericCRDSettings)

    model_config = SettingsConfigDict(
        env_prefix="KUBERNETES_INGESTOR_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("annotation_prefix")
    @classmethod
    def _prefix_not_blank(cls, v: str) -> str:
        return v.strip() or DEFAULT_ANNOTATION_PREFIX


def load_settings(path: Path) -> IngestorSettings:
    """Load settings from a YAML file; environment variables fill the gaps."""
    raw: Dict[str, Any] = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    section = raw.get("kubernetes_ingestor", raw)
    return IngestorSettings(**section)


@functools.lru_cache(maxsize=1)
def get_settings() -> IngestorSettings:
    return IngestorSettings()
