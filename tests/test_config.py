"""Unit tests for ingestor settings."""

import pytest
from pydantic import ValidationError

from xrd_ingestor.config import IngestorSettings, PublishPhaseSettings, load_settings


class TestPublishPhaseSettings:

    @pytest.mark.unit
    def test_target_lowercased(self):
        assert PublishPhaseSettings(target="GitLab").target == "gitlab"

    @pytest.mark.unit
    def test_blank_target_is_none(self):
        assert PublishPhaseSettings(target="").target is None

    @pytest.mark.unit
    def test_unknown_target_rejected(self):
        with pytest.raises(ValidationError):
            PublishPhaseSettings(target="svn")

    @pytest.mark.unit
    def test_file_only(self):
        assert PublishPhaseSettings(target="YAML").is_file_only is True
        assert PublishPhaseSettings(target="github").is_file_only is False


class TestIngestorSettings:

    @pytest.mark.unit
    def test_defaults(self):
        settings = IngestorSettings()
        assert settings.annotation_prefix == "terasky.backstage.io"
        assert settings.allowed_cluster_names is None
        assert settings.crossplane_enabled is True
        assert settings.generic_crds.enabled is False

    @pytest.mark.unit
    def test_blank_prefix_falls_back(self):
        assert IngestorSettings(annotation_prefix="  ").annotation_prefix == "terasky.backstage.io"

    @pytest.mark.unit
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("KUBERNETES_INGESTOR_INGEST_ALL_XRDS", "true")
        monkeypatch.setenv("KUBERNETES_INGESTOR_XRD_PUBLISH__TARGET", "bitbucket")
        settings = IngestorSettings()
        assert settings.ingest_all_xrds is True
        assert settings.xrd_publish.target == "bitbucket"

    @pytest.mark.unit
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "kubernetes_ingestor:\n"
            "  allowed_cluster_names: [prod]\n"
            "  xrd_publish:\n"
            "    target: gitlab\n"
            "    repo_url: gitlab.com?owner=a&repo=b\n"
            "  generic_crds:\n"
            "    crd_label_selector: team=platform\n"
            "  clusters:\n"
            "    - name: prod\n"
            "      url: https://prod:6443\n"
            "      service_account_token: abc\n"
        )
        settings = load_settings(path)
        assert settings.allowed_cluster_names == ["prod"]
        assert settings.xrd_publish.repo_url == "gitlab.com?owner=a&repo=b"
        assert settings.generic_crds.enabled is True
        assert settings.clusters[0].auth_provider == "serviceAccount"
